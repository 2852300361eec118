from __future__ import annotations

from fastapi import APIRouter, Request

from security_gateway.core.errors import StoreAppError

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Pings the event store so load balancers take the instance out of rotation
    when its datastore is unreachable. A failed ping becomes ``StoreAppError``,
    which the global handler turns into a 503.

    Returns:
        dict: ``{"status": "ok", "store": <backend name>}``.
    """

    store = request.app.state.store
    try:
        await store.ping()
    except Exception as exc:
        raise StoreAppError(
            code="store_unavailable",
            message="Event store unavailable",
            details={"backend": store.name},
        ) from exc
    return {"status": "ok", "store": store.name}
