"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any import that might load settings,
so the suite always runs against the in-memory store.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone

import pytest

from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.adapters.store.in_memory import InMemoryEventStore
from security_gateway.core.errors import StoreAppError


class FakeClock:
    """Deterministic UTC clock used to test window arithmetic."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FlakyEventStore(InMemoryEventStore):
    """In-memory store whose operations can be switched to fail.

    Every call is recorded in ``calls`` so tests can assert that a code path
    never touched the store.
    """

    def __init__(self) -> None:
        super().__init__()
        self.fail_count = False
        self.fail_insert_attempt = False
        self.fail_insert_event = False
        self.calls: list[str] = []

    def _boom(self, operation: str) -> StoreAppError:
        return StoreAppError(code="store_unavailable", message=f"{operation} failed: connection refused")

    async def ping(self) -> None:
        self.calls.append("ping")
        if self.fail_count:
            raise self._boom("ping")

    async def count_attempts(self, action, identifier, since):
        self.calls.append("count_attempts")
        if self.fail_count:
            raise self._boom("count_attempts")
        return await super().count_attempts(action, identifier, since)

    async def insert_attempt(self, record):
        self.calls.append("insert_attempt")
        if self.fail_insert_attempt:
            raise self._boom("insert_attempt")
        await super().insert_attempt(record)

    async def insert_event(self, event):
        self.calls.append("insert_event")
        if self.fail_insert_event:
            raise self._boom("insert_event")
        await super().insert_event(event)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def flaky_store() -> FlakyEventStore:
    return FlakyEventStore()


@pytest.fixture
def unreachable_store() -> AbstractEventStore:
    """Store that fails every operation with a plain connection error."""

    class UnreachableEventStore(AbstractEventStore):
        name = "unreachable"

        async def ping(self):
            raise ConnectionError("database is unreachable")

        async def insert_attempt(self, record):
            raise ConnectionError("database is unreachable")

        async def count_attempts(self, action, identifier, since):
            raise ConnectionError("database is unreachable")

        async def insert_event(self, event):
            raise ConnectionError("database is unreachable")

        async def list_events(self, *, since=None, min_severity=None, limit=None):
            raise ConnectionError("database is unreachable")

    return UnreachableEventStore()
