"""API routers."""

from .auth import router as auth_router
from .csrf import router as csrf_router
from .health import router as health_router
from .security_test import router as security_test_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "csrf_router",
    "health_router",
    "security_test_router",
    "users_router",
]
