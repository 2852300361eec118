"""Gateway endpoint.

The route stays thin: it reads the raw body and Origin header, hands them to
the dispatcher configured on ``app.state``, and converts the dispatcher's
transport-neutral response into a Starlette response.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from security_gateway.schemas.gateway import ErrorResponse
from security_gateway.services.dispatcher import GatewayDispatcher, GatewayResponse

router = APIRouter(tags=["Security"])


def get_dispatcher(request: Request) -> GatewayDispatcher:
    """FastAPI dependency returning the dispatcher built by the app factory."""
    return request.app.state.dispatcher


def _to_http(response: GatewayResponse) -> Response:
    if response.body is None:
        return Response(status_code=response.status_code, headers=response.headers)
    return JSONResponse(
        status_code=response.status_code,
        content=response.body,
        headers=response.headers,
    )


@router.options("/security-utils", include_in_schema=False)
async def security_utils_preflight(
    request: Request,
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> Response:
    """CORS pre-flight: empty body, permissive headers, no side effects."""
    return _to_http(dispatcher.preflight(request.headers.get("origin")))


@router.post(
    "/security-utils",
    responses={
        400: {"model": ErrorResponse, "description": "Malformed body, invalid payload or unknown action"},
        500: {"model": ErrorResponse, "description": "Unexpected internal failure"},
    },
)
async def security_utils(
    request: Request,
    dispatcher: GatewayDispatcher = Depends(get_dispatcher),
) -> Response:
    """Single gateway entry point.

    The JSON body's ``action`` selects the capability:

    - ``rate_limit_check``: 200 when allowed, 429 when the limit is exceeded
    - ``security_log``: 200 when stored, 500 when the store write failed
    - ``validate_input``: always 200, findings reported as warnings

    Any other ``action`` returns 400 ``{"error": "Invalid action"}``.
    """
    raw_body = await request.body()
    response = await dispatcher.dispatch(raw_body, request.headers.get("origin"))
    return _to_http(response)
