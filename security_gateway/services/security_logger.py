"""Security event logger.

Writes one SecurityEvent per call. A store failure is reported back to the
caller (``success=False`` with the error text) instead of being raised, so a
broken store never turns a logging call into a crashed request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.schemas.records import SecurityEvent, Severity

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LogResult:
    """Outcome of a single log call.

    Attributes:
        success: Whether the event was persisted.
        error: Store error message when ``success`` is False.
    """

    success: bool
    error: str | None = None


class SecurityEventLogger:
    """Persist security events and mirror them to the application log."""

    def __init__(
        self,
        store: AbstractEventStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    async def log(
        self,
        action: str,
        details: Mapping[str, Any] | None = None,
        severity: Severity | str = Severity.LOW,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LogResult:
        """Record a security event.

        Args:
            action: Event name (e.g. "rate_limit_exceeded").
            details: JSON-serializable forensic payload.
            severity: Triage classification, enum member or its string value.
            ip_address: Optional caller address.
            user_agent: Optional caller user agent.

        Returns:
            LogResult with ``success=False`` and a non-empty ``error`` when
            the store write failed.

        Raises:
            ValueError: If ``severity`` is not a known severity value.
        """
        severity = Severity(severity)
        event = SecurityEvent(
            action=action,
            details=dict(details or {}),
            severity=severity,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=self._clock(),
        )

        try:
            await self._store.insert_event(event)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            logger.error(
                "security_event.write_failed",
                extra={
                    "event_action": action,
                    "severity": severity.value,
                    "error_type": type(exc).__name__,
                    "error_msg": error,
                },
            )
            return LogResult(success=False, error=error)

        logger.log(
            severity.log_level,
            "security_event.recorded",
            extra={
                "event_action": action,
                "severity": severity.value,
                "detail_keys": sorted(event.details),
            },
        )
        return LogResult(success=True)
