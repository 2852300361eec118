"""Sliding-window rate limiter over stored attempt records.

Each check counts the attempts recorded for the exact (action, identifier)
key during the trailing ``window_seconds``. Allowed checks record a new
attempt; rejected checks do not, and instead emit a ``rate_limit_exceeded``
security event.

Failure policy:
- Counting fails (store error or a window reaching past the calendar) ->
  the check is allowed (fail-open) with ``remaining=limit``.
- Recording an allowed attempt fails -> logged, response unchanged.

Concurrency: the count and the insert are two separate store calls. Two
concurrent checks on the same key can both observe ``count < limit`` and both
be allowed, so the effective limit may be exceeded by a small margin under
contention. Unrelated keys never contend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.core.logging import hash_identifier
from security_gateway.schemas.records import AttemptRecord, Severity
from security_gateway.services.security_logger import SecurityEventLogger, utcnow

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
DEFAULT_WINDOW_SECONDS = 300

RATE_LIMIT_EXCEEDED_EVENT = "rate_limit_exceeded"


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the caller may proceed.
        remaining: Checks left in the current window (0 when blocked).
        limit: Limit that was applied.
        window_seconds: Window length that was applied.
        reset_at: When a blocked caller should retry; None when allowed.
    """

    allowed: bool
    remaining: int
    limit: int
    window_seconds: int
    reset_at: datetime | None = None


class RateLimiter:
    """Counting sliding-window limiter backed by an event store."""

    def __init__(
        self,
        store: AbstractEventStore,
        event_logger: SecurityEventLogger,
        *,
        default_limit: int = DEFAULT_LIMIT,
        default_window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Backing store for attempt records.
            event_logger: Logger used to report exceeded limits.
            default_limit: Limit applied when a check omits one.
            default_window_seconds: Window applied when a check omits one.
            clock: Time source returning timezone-aware UTC datetimes.

        Raises:
            ValueError: If the defaults are out of range.
        """
        if default_limit < 0:
            raise ValueError("default_limit must be >= 0")
        if default_window_seconds < 1:
            raise ValueError("default_window_seconds must be >= 1")

        self._store = store
        self._event_logger = event_logger
        self._default_limit = default_limit
        self._default_window_seconds = default_window_seconds
        self._clock = clock

    async def check(
        self,
        action: str,
        identifier: str,
        limit: int | None = None,
        window_seconds: int | None = None,
    ) -> RateLimitDecision:
        """Check and consume one slot for ``(action, identifier)``.

        Args:
            action: Throttled operation name. Matched verbatim.
            identifier: Caller key. Matched verbatim.
            limit: Allowed checks per window; ``0`` denies every check.
            window_seconds: Trailing window length in seconds.

        Returns:
            RateLimitDecision describing the outcome.

        Raises:
            ValueError: If ``limit`` is negative or ``window_seconds`` < 1.
        """
        limit = self._default_limit if limit is None else limit
        window_seconds = self._default_window_seconds if window_seconds is None else window_seconds
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        now = self._clock()
        key_hash = hash_identifier(f"{action}:{identifier}")

        try:
            window_start = now - timedelta(seconds=window_seconds)
            count = await self._store.count_attempts(action, identifier, window_start)
        except Exception as exc:
            logger.warning(
                "rate_limit.fail_open",
                extra={
                    "rate_limit_action": action,
                    "key_hash": key_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return RateLimitDecision(
                allowed=True,
                remaining=limit,
                limit=limit,
                window_seconds=window_seconds,
            )

        if count >= limit:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "rate_limit_action": action,
                    "key_hash": key_hash,
                    "attempts": count,
                    "limit": limit,
                    "window_s": window_seconds,
                },
            )
            await self._event_logger.log(
                RATE_LIMIT_EXCEEDED_EVENT,
                {
                    "rate_limit_action": action,
                    "identifier": identifier,
                    "attempts": count,
                    "limit": limit,
                    "window": window_seconds,
                },
                Severity.MEDIUM,
            )
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                limit=limit,
                window_seconds=window_seconds,
                reset_at=now + timedelta(seconds=window_seconds),
            )

        try:
            await self._store.insert_attempt(
                AttemptRecord(action=action, identifier=identifier, occurred_at=now)
            )
        except Exception as exc:
            logger.warning(
                "rate_limit.record_failed",
                extra={
                    "rate_limit_action": action,
                    "key_hash": key_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

        remaining = limit - count - 1
        logger.info(
            "rate_limit.allowed",
            extra={
                "rate_limit_action": action,
                "key_hash": key_hash,
                "limit": limit,
                "remaining": remaining,
                "window_s": window_seconds,
            },
        )
        return RateLimitDecision(
            allowed=True,
            remaining=remaining,
            limit=limit,
            window_seconds=window_seconds,
        )
