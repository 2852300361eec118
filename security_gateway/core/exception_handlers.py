"""Global exception handlers for consistent error responses.

The dispatcher already converts every gateway outcome into a response; these
handlers are the safety net for everything around it (health checks,
middleware, framework errors).

Design:
- AppError subclasses → status by type (400, 503), body ``{"error": message}``
- Unexpected Exception → generic 500, no implementation details leaked
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from security_gateway.core.errors import AppError, StoreAppError, ValidationAppError
from security_gateway.core.logging import get_request_id
from security_gateway.schemas.gateway import ErrorResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, StoreAppError):
        return 503
    if isinstance(exc, ValidationAppError):
        return 400
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the gateway's error envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with ``{"error": message}`` and the mapped status code.
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(status_code=status_code, content=ErrorResponse(error=exc.message).model_dump())


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(status_code=500, content=ErrorResponse(error=INTERNAL_ERROR_MESSAGE).model_dump())


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
