"""Gateway dispatcher: the single entry point behind the HTTP route.

The dispatcher decodes a raw body into one ``GatewayRequest`` variant, routes
it to the rate limiter, the security event logger or the input sanitizer, and
normalizes every outcome (including failures) into a ``GatewayResponse``.
It holds no per-request state; everything it needs is passed in at
construction time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from security_gateway.core.errors import ValidationAppError
from security_gateway.schemas.gateway import (
    ErrorResponse,
    GatewayRequest,
    RateLimitCheckRequest,
    RateLimitResponse,
    SecurityLogRequest,
    SecurityLogResponse,
    UnknownActionRequest,
    ValidateInputRequest,
    decode_request,
)
from security_gateway.services.input_sanitizer import MAX_INPUT_LENGTH, validate_input
from security_gateway.services.rate_limiter import RateLimitDecision, RateLimiter
from security_gateway.services.security_logger import SecurityEventLogger

logger = logging.getLogger(__name__)

DEFAULT_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"

INVALID_ACTION = "Invalid action"
INVALID_JSON = "Invalid JSON body"
INTERNAL_ERROR = "Internal server error"


@dataclass(frozen=True)
class GatewayResponse:
    """Transport-neutral response produced by the dispatcher.

    Attributes:
        status_code: HTTP status to send.
        body: JSON-serializable body, or None for an empty body.
        headers: Extra response headers (CORS, rate limit metadata).
    """

    status_code: int
    body: dict[str, Any] | None
    headers: dict[str, str] = field(default_factory=dict)


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> GatewayResponse:
    return GatewayResponse(status_code, ErrorResponse(error=message).model_dump(), headers or {})


class GatewayDispatcher:
    """Route decoded gateway requests to their capability."""

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        event_logger: SecurityEventLogger,
        allowed_origins: Iterable[str] = ("*",),
        allow_headers: str = DEFAULT_ALLOW_HEADERS,
        max_input_chars: int = MAX_INPUT_LENGTH,
        include_rate_limit_headers: bool = True,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._event_logger = event_logger
        self._allowed_origins = tuple(allowed_origins)
        self._allow_headers = allow_headers
        self._max_input_chars = max_input_chars
        self._include_rate_limit_headers = include_rate_limit_headers

    def cors_headers(self, origin: str | None = None) -> dict[str, str]:
        """Build CORS headers for a request coming from ``origin``.

        A wildcard entry allows every origin. Otherwise the request origin is
        echoed back only when it is listed; unlisted origins get no
        ``Access-Control-Allow-Origin`` header at all.
        """
        headers = {"Access-Control-Allow-Headers": self._allow_headers}
        if "*" in self._allowed_origins:
            headers["Access-Control-Allow-Origin"] = "*"
        elif origin and origin in self._allowed_origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        return headers

    def preflight(self, origin: str | None = None) -> GatewayResponse:
        """Answer a CORS pre-flight request. Never touches the store."""
        return GatewayResponse(status_code=200, body=None, headers=self.cors_headers(origin))

    async def dispatch(self, raw_body: bytes | str, origin: str | None = None) -> GatewayResponse:
        """Handle one gateway request end to end.

        Never raises: malformed bodies and invalid payloads become 400s and
        any unexpected failure becomes a generic 500.

        Args:
            raw_body: Request body as received.
            origin: Value of the request's Origin header, if any.

        Returns:
            GatewayResponse with status, body and headers.
        """
        cors = self.cors_headers(origin)

        try:
            body = json.loads(raw_body)
        except (ValueError, TypeError):
            logger.info("gateway.rejected", extra={"reason": "invalid_json"})
            return _error(400, INVALID_JSON, cors)

        try:
            request = decode_request(body)
        except ValidationAppError as exc:
            logger.info(
                "gateway.rejected",
                extra={"reason": exc.code, "error_message": exc.message},
            )
            return _error(400, exc.message, cors)

        try:
            response = await self.handle(request)
        except Exception as exc:
            logger.error(
                "gateway.unhandled_exception",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
                exc_info=True,
            )
            return _error(500, INTERNAL_ERROR, cors)

        return GatewayResponse(response.status_code, response.body, {**cors, **response.headers})

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Route an already decoded request to its capability."""
        if isinstance(request, RateLimitCheckRequest):
            return await self._handle_rate_limit(request)
        if isinstance(request, SecurityLogRequest):
            return await self._handle_security_log(request)
        if isinstance(request, ValidateInputRequest):
            return self._handle_validate_input(request)
        if isinstance(request, UnknownActionRequest):
            logger.info(
                "gateway.rejected",
                extra={"reason": "invalid_action", "gateway_action": str(request.action)[:64]},
            )
            return _error(400, INVALID_ACTION)
        raise TypeError(f"Unhandled gateway request type: {type(request).__name__}")

    async def _handle_rate_limit(self, request: RateLimitCheckRequest) -> GatewayResponse:
        decision = await self._rate_limiter.check(
            request.rate_limit_action,
            request.identifier,
            limit=request.limit,
            window_seconds=request.window,
        )
        body = RateLimitResponse(
            allowed=decision.allowed,
            remaining=decision.remaining,
            reset_at=decision.reset_at,
        ).model_dump(mode="json", by_alias=True, exclude_none=True)

        if decision.allowed:
            return GatewayResponse(200, body)
        return GatewayResponse(429, body, self._rate_limit_headers(decision))

    def _rate_limit_headers(self, decision: RateLimitDecision) -> dict[str, str]:
        if not self._include_rate_limit_headers or decision.reset_at is None:
            return {}
        return {
            "Retry-After": str(decision.window_seconds),
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(int(decision.reset_at.timestamp())),
        }

    async def _handle_security_log(self, request: SecurityLogRequest) -> GatewayResponse:
        result = await self._event_logger.log(
            request.log_action,
            request.details or {},
            request.severity,
            ip_address=request.ip_address,
            user_agent=request.user_agent,
        )
        body = SecurityLogResponse(success=result.success, error=result.error).model_dump(
            mode="json", exclude_none=True
        )
        return GatewayResponse(200 if result.success else 500, body)

    def _handle_validate_input(self, request: ValidateInputRequest) -> GatewayResponse:
        result = validate_input(request.input, request.type, max_length=self._max_input_chars)
        if result.warnings:
            logger.info(
                "input_validation.flagged",
                extra={
                    "input_type": request.type,
                    "is_valid": result.is_valid,
                    "warnings": result.warnings,
                },
            )
        return GatewayResponse(200, result.model_dump(mode="json", by_alias=True))
