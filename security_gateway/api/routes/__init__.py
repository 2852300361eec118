from __future__ import annotations

from security_gateway.api.routes.health import router as health_router
from security_gateway.api.routes.security import router as security_router

__all__ = ["health_router", "security_router"]
