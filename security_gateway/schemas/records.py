"""Records persisted by the event store and the severity taxonomy.

Both record types are immutable: the gateway only ever inserts them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Ordered classification attached to a security event for triage."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def log_level(self) -> int:
        """Application log level used when mirroring an event to the log."""
        return _SEVERITY_LOG_LEVEL[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}

_SEVERITY_LOG_LEVEL = {
    Severity.LOW: logging.INFO,
    Severity.MEDIUM: logging.WARNING,
    Severity.HIGH: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


@dataclass(frozen=True)
class AttemptRecord:
    """One rate-limit check that was allowed through.

    Attributes:
        action: Name of the throttled operation (e.g. "login_attempt").
        identifier: Opaque caller key (user id, IP, or composite).
        occurred_at: Timezone-aware UTC timestamp set at write time.
    """

    action: str
    identifier: str
    occurred_at: datetime


@dataclass(frozen=True)
class SecurityEvent:
    """One logged security-relevant occurrence.

    Attributes:
        action: Free-form event name (e.g. "rate_limit_exceeded").
        details: JSON-serializable forensic payload.
        severity: Triage classification.
        created_at: Timezone-aware UTC timestamp set at write time.
        ip_address: Optional caller address.
        user_agent: Optional caller user agent.
    """

    action: str
    created_at: datetime
    severity: Severity = Severity.LOW
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
