"""API routers."""

from .admin import router as admin_router
from .applications import router as applications_router
from .session import router as session_router

__all__ = ["admin_router", "applications_router", "session_router"]
