"""Event store interface.

Services depend on this abstraction (not a concrete backend) so the
in-process store used in development and tests can be swapped for a shared
SQL database without touching the rate limiter or the event logger.

Implementations must report every backend failure as ``StoreAppError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from security_gateway.schemas.records import AttemptRecord, SecurityEvent, Severity


class AbstractEventStore(ABC):
    """Append-only access to attempt records and security events."""

    name: str = "abstract"

    async def initialize(self) -> None:
        """Prepare the backend (connections, schema). Called once at startup."""

    async def close(self) -> None:
        """Release backend resources. Called once at shutdown."""

    @abstractmethod
    async def ping(self) -> None:
        """Check that the backend is reachable.

        Raises:
            StoreAppError: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert_attempt(self, record: AttemptRecord) -> None:
        """Append an attempt record.

        Raises:
            StoreAppError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def count_attempts(self, action: str, identifier: str, since: datetime) -> int:
        """Count attempts for the exact (action, identifier) key.

        Args:
            action: Throttled operation name, matched verbatim.
            identifier: Caller key, matched verbatim.
            since: Inclusive lower bound on ``occurred_at``.

        Returns:
            Number of matching attempt records.

        Raises:
            StoreAppError: If the read fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def insert_event(self, event: SecurityEvent) -> None:
        """Append a security event.

        Raises:
            StoreAppError: If the write fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_events(
        self,
        *,
        since: datetime | None = None,
        min_severity: Severity | None = None,
        limit: int | None = None,
    ) -> list[SecurityEvent]:
        """Read back security events, newest first.

        Args:
            since: Optional inclusive lower bound on ``created_at``.
            min_severity: Optional minimum severity (inclusive).
            limit: Optional maximum number of events returned.

        Raises:
            StoreAppError: If the read fails.
        """
        raise NotImplementedError
