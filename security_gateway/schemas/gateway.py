"""Pydantic schemas for gateway requests and responses.

Incoming bodies are decoded into exactly one variant of ``GatewayRequest``
before dispatch. The capability's own action name travels in a separate
field (``rateLimitAction`` / ``logAction``) because ``action`` carries the
gateway discriminant.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from security_gateway.core.errors import ValidationAppError
from security_gateway.schemas.records import Severity

# Upper bound for ``window``: one year.
MAX_WINDOW_SECONDS = 365 * 24 * 60 * 60


class RateLimitCheckRequest(BaseModel):
    """Payload for ``action="rate_limit_check"``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: Literal["rate_limit_check"] = "rate_limit_check"
    rate_limit_action: str = Field(
        ...,
        validation_alias=AliasChoices("rateLimitAction", "rate_limit_action"),
        description="Name of the operation being throttled (e.g. 'login_attempt').",
    )
    identifier: str = Field(..., description="Opaque caller key used to partition counters.")
    limit: int | None = Field(None, ge=0, description="Attempts allowed per window.")
    window: int | None = Field(
        None, ge=1, le=MAX_WINDOW_SECONDS, description="Sliding window length in seconds."
    )


class SecurityLogRequest(BaseModel):
    """Payload for ``action="security_log"``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: Literal["security_log"] = "security_log"
    log_action: str = Field(
        ...,
        validation_alias=AliasChoices("logAction", "log_action"),
        description="Event name (e.g. 'xss_attempt_login').",
    )
    details: dict[str, Any] | None = Field(None, description="Opaque forensic payload.")
    severity: Severity = Severity.LOW
    ip_address: str | None = None
    user_agent: str | None = None


class ValidateInputRequest(BaseModel):
    """Payload for ``action="validate_input"``.

    ``input`` is deliberately untyped: non-string values are reported by the
    sanitizer as "Invalid input type" rather than rejected here.
    """

    model_config = ConfigDict(extra="ignore")

    action: Literal["validate_input"] = "validate_input"
    input: Any = None
    type: str | None = "generic"


class UnknownActionRequest(BaseModel):
    """Any body whose ``action`` is missing or not one of the known values."""

    action: Any = None


GatewayRequest = Union[
    RateLimitCheckRequest,
    SecurityLogRequest,
    ValidateInputRequest,
    UnknownActionRequest,
]

_REQUEST_MODELS: dict[str, type[BaseModel]] = {
    "rate_limit_check": RateLimitCheckRequest,
    "security_log": SecurityLogRequest,
    "validate_input": ValidateInputRequest,
}


def _describe_validation_error(exc: ValidationError) -> tuple[str, str]:
    """Reduce a pydantic error to (field, short message) for the first failure."""

    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    if first.get("type") == "missing":
        return field, f"Missing required field: {field}"
    return field, f"Invalid {field}: {first.get('msg', 'invalid value')}"


def decode_request(body: Any) -> GatewayRequest:
    """Decode a parsed JSON body into a gateway request variant.

    Args:
        body: Value produced by ``json.loads`` on the request body.

    Returns:
        The matching request model, or ``UnknownActionRequest`` when the body
        is not an object or its ``action`` is not recognized.

    Raises:
        ValidationAppError: If the action is known but its payload is invalid.
    """
    if not isinstance(body, dict):
        return UnknownActionRequest(action=None)

    action = body.get("action")
    model = _REQUEST_MODELS.get(action) if isinstance(action, str) else None
    if model is None:
        return UnknownActionRequest(action=action)

    try:
        return model.model_validate(body)
    except ValidationError as exc:
        field, message = _describe_validation_error(exc)
        raise ValidationAppError(
            code="invalid_payload",
            message=message,
            details={"field": field, "context": {"action": action}},
        ) from exc


class RateLimitResponse(BaseModel):
    allowed: bool
    remaining: int
    reset_at: datetime | None = Field(None, serialization_alias="resetAt")


class SecurityLogResponse(BaseModel):
    success: bool
    error: str | None = None


class ValidationResult(BaseModel):
    """Outcome of the sanitizer pipeline. Never persisted."""

    is_valid: bool = Field(..., serialization_alias="isValid")
    sanitized: Any = Field(None, description="Cleaned string (or the raw input when invalid).")
    warnings: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
