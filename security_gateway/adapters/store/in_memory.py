"""In-memory event store.

Notes:
- Per-process only: multiple workers each keep their own counters.
- Thread-safe: uses a lock around shared state.
- Nothing is ever evicted; intended for development and tests.
"""

from __future__ import annotations

import threading
from datetime import datetime

from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.schemas.records import AttemptRecord, SecurityEvent, Severity


class InMemoryEventStore(AbstractEventStore):
    """Event store keeping both collections in process memory."""

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._attempts: list[AttemptRecord] = []
        self._events: list[SecurityEvent] = []

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryEventStore(attempts={len(self._attempts)}, events={len(self._events)})"

    async def ping(self) -> None:
        return None

    async def insert_attempt(self, record: AttemptRecord) -> None:
        with self._lock:
            self._attempts.append(record)

    async def count_attempts(self, action: str, identifier: str, since: datetime) -> int:
        with self._lock:
            return sum(
                1
                for record in self._attempts
                if record.action == action
                and record.identifier == identifier
                and record.occurred_at >= since
            )

    async def insert_event(self, event: SecurityEvent) -> None:
        with self._lock:
            self._events.append(event)

    async def list_events(
        self,
        *,
        since: datetime | None = None,
        min_severity: Severity | None = None,
        limit: int | None = None,
    ) -> list[SecurityEvent]:
        with self._lock:
            events = list(self._events)

        if since is not None:
            events = [e for e in events if e.created_at >= since]
        if min_severity is not None:
            events = [e for e in events if e.severity.at_least(min_severity)]

        # Stable sort keeps insertion order for equal timestamps, reversed below
        events.sort(key=lambda e: e.created_at)
        events.reverse()
        return events[:limit] if limit is not None else events
