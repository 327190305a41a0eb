from __future__ import annotations

from authgate.api.routes.accounts import router as accounts_router
from authgate.api.routes.health import router as health_router
from authgate.api.routes.session import router as session_router

__all__ = ["accounts_router", "health_router", "session_router"]
