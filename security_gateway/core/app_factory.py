"""Application factory for the FastAPI app.

Builds the whole object graph (event store, event logger, rate limiter,
dispatcher) from explicit settings and attaches it to ``app.state``, so
tests can inject their own settings or store and nothing reads process-wide
globals at request time.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from security_gateway import __version__
from security_gateway.adapters.store.base import AbstractEventStore
from security_gateway.adapters.store.factory import create_event_store
from security_gateway.api.routes import health_router, security_router
from security_gateway.core.config import Settings, settings as default_settings
from security_gateway.core.exception_handlers import setup_exception_handlers
from security_gateway.core.logging import configure_logging
from security_gateway.core.middleware import build_request_id_middleware
from security_gateway.core.openapi import apply_openapi_customizations
from security_gateway.services.dispatcher import GatewayDispatcher
from security_gateway.services.rate_limiter import RateLimiter
from security_gateway.services.security_logger import SecurityEventLogger

logger = logging.getLogger(__name__)


def build_dispatcher(app_settings: Settings, store: AbstractEventStore) -> GatewayDispatcher:
    """Wire the services around a store according to ``app_settings``."""
    gateway = app_settings.gateway
    event_logger = SecurityEventLogger(store)
    rate_limiter = RateLimiter(
        store,
        event_logger,
        default_limit=gateway.rate_limit_default_limit,
        default_window_seconds=gateway.rate_limit_default_window_seconds,
    )
    return GatewayDispatcher(
        rate_limiter=rate_limiter,
        event_logger=event_logger,
        allowed_origins=gateway.allowed_origins,
        allow_headers=gateway.cors_allow_headers,
        max_input_chars=gateway.max_input_chars,
        include_rate_limit_headers=gateway.rate_limit_include_headers,
    )


def create_app(
    app_settings: Settings | None = None,
    store: AbstractEventStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the environment-loaded settings.
        store: Event store to use; defaults to the backend selected by
            ``app_settings.store``.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    event_store = store or create_event_store(cfg.store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await event_store.initialize()
        logger.info("gateway.started", extra={"store": event_store.name, "app_env": cfg.app_env})
        try:
            yield
        finally:
            await event_store.close()
            logger.info("gateway.stopped", extra={"store": event_store.name})

    app = FastAPI(
        title="Security Gateway",
        description=(
            "Single-endpoint security service: sliding-window rate limiting keyed "
            "by action and identifier, structured security event logging, and "
            "input sanitization against script and SQL injection."
        ),
        version=__version__,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.store = event_store
    app.state.dispatcher = build_dispatcher(cfg, event_store)

    # Middleware
    app.middleware("http")(build_request_id_middleware(cfg.log.request_id_header))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(security_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
