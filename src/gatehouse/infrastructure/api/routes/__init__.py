"""API Routes for Gatehouse."""

from gatehouse.infrastructure.api.routes.auth_router import router as auth_router
from gatehouse.infrastructure.api.routes.permissions_router import router as permissions_router
from gatehouse.infrastructure.api.routes.roles_router import router as roles_router
from gatehouse.infrastructure.api.routes.users_router import router as users_router

__all__ = [
    "auth_router",
    "permissions_router",
    "roles_router",
    "users_router",
]
