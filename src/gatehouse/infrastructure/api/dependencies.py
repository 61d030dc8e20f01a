"""FastAPI dependencies for authentication and authorization.

Every protected route resolves the principal through the authorization gate,
so suspended accounts are rejected before any handler runs.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.config import get_settings
from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import User
from gatehouse.domain.exceptions import AccessDenied, AuthenticationFailed
from gatehouse.domain.services import AbilityResolver, AuthorizationGate, PermissionCache
from gatehouse.infrastructure.persistence.database import get_db_session
from gatehouse.infrastructure.persistence.identity_store import SqlIdentityStore
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.services import LoggingResetNotifier, PasswordResetNotifier

logger = get_logger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_permission_cache(request: Request) -> PermissionCache:
    """Get the permission cache from app state, creating it on first use.

    Args:
        request: FastAPI request object.

    Returns:
        PermissionCache instance shared by every request.
    """
    if not hasattr(request.app.state, "permission_cache"):
        request.app.state.permission_cache = PermissionCache(
            ttl_seconds=get_settings().permission_cache_ttl_seconds
        )
    return request.app.state.permission_cache


def get_reset_notifier(request: Request) -> PasswordResetNotifier:
    """Get the password reset notifier from app state, defaulting to logging."""
    if not hasattr(request.app.state, "reset_notifier"):
        request.app.state.reset_notifier = LoggingResetNotifier()
    return request.app.state.reset_notifier


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str | None:
    """Extract the bearer token from the Authorization header, if any."""
    if authorization is None:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def get_identity_store(session: DbSession) -> SqlIdentityStore:
    return SqlIdentityStore(session)


def get_permission_graph(session: DbSession) -> SqlPermissionGraph:
    return SqlPermissionGraph(session)


def get_ability_resolver(
    graph: Annotated[SqlPermissionGraph, Depends(get_permission_graph)],
    cache: Annotated[PermissionCache, Depends(get_permission_cache)],
) -> AbilityResolver:
    return AbilityResolver(graph, cache)


async def get_principal(
    token: Annotated[str | None, Depends(get_bearer_token)],
    store: Annotated[SqlIdentityStore, Depends(get_identity_store)],
) -> User | None:
    """Resolve the request principal through the authorization gate.

    Returns:
        The active user, or None for anonymous requests.

    Raises:
        AccountSuspended: If the principal is deactivated.
    """
    return await AuthorizationGate(store).evaluate(token)


async def get_current_user(
    principal: Annotated[User | None, Depends(get_principal)],
) -> User:
    """Require an authenticated principal.

    Raises:
        AuthenticationFailed: If the request carries no valid token.
    """
    if principal is None:
        logger.info("Authentication failed: missing or invalid token")
        raise AuthenticationFailed()
    return principal


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
Principal = Annotated[User | None, Depends(get_principal)]
Resolver = Annotated[AbilityResolver, Depends(get_ability_resolver)]


def require_ability(action: str, subject: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that requires ``action`` on ``subject``.

    Args:
        action: Action verb.
        subject: Resource name.

    Returns:
        Dependency returning the authorized user.
    """

    async def dependency(user: CurrentUser, resolver: Resolver) -> User:
        if not await resolver.can(user, action, subject):
            logger.info("Access denied", user_id=user.id, action=action, subject=subject)
            raise AccessDenied(action=action, subject=subject)
        return user

    return dependency


UserManager = Annotated[User, Depends(require_ability("manage", "users"))]
RoleManager = Annotated[User, Depends(require_ability("manage", "roles"))]
PermissionManager = Annotated[User, Depends(require_ability("manage", "permissions"))]
