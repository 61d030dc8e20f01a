"""Ability resolution service.

Answers ``can(user, action, subject)`` against the role-permission graph.

Resolution order:
1. A public permission matching the request grants it, even anonymously.
2. Anonymous callers are denied otherwise.
3. Holders of an owner role are granted everything.
4. Otherwise the user's effective permissions (role permissions plus every
   always-allowed permission) are matched.

Deny by default: any error during resolution results in a denial.
"""

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import Ability, Permission, Role, User
from gatehouse.domain.services.permission_cache import PermissionCache
from gatehouse.domain.services.permission_graph import PermissionGraph

logger = get_logger(__name__)

PUBLIC_SCOPE_ID = "*"


def merge_permissions(*groups: list[Permission]) -> list[Permission]:
    """Concatenate permission lists, keeping the first occurrence of each id."""
    merged: dict[int | str, Permission] = {}
    for group in groups:
        for permission in group:
            merged.setdefault(permission.id if permission.id is not None else permission.key, permission)
    return list(merged.values())


class AbilityResolver:
    """Resolves abilities for users from their roles and permission flags."""

    def __init__(self, graph: PermissionGraph, cache: PermissionCache | None = None):
        """Initialize the resolver.

        Args:
            graph: Role-permission graph to read from.
            cache: Optional cache for per-user effective permissions.
        """
        self.graph = graph
        self.cache = cache or PermissionCache()

    async def roles_for(self, user: User) -> list[Role]:
        """Roles currently held by the user, read through the cache."""
        roles = self.cache.get(user.id, "roles")
        if roles is None:
            roles = await self.graph.roles_for_user(user.id)
            self.cache.set(user.id, roles, "roles")
        return roles

    async def is_owner(self, user: User) -> bool:
        """Whether the user holds an owner role."""
        return any(role.is_owner for role in await self.roles_for(user))

    async def public_permissions(self) -> list[Permission]:
        permissions = self.cache.get(PUBLIC_SCOPE_ID, "public")
        if permissions is None:
            permissions = await self.graph.public_permissions()
            self.cache.set(PUBLIC_SCOPE_ID, permissions, "public")
        return permissions

    async def universe(self) -> list[Permission]:
        """Every registered permission, computed once per cache lifetime."""
        permissions = self.cache.get_universe()
        if permissions is None:
            permissions = await self.graph.all_permissions()
            self.cache.set_universe(permissions)
        return permissions

    async def always_allowed_permissions(self) -> list[Permission]:
        permissions = self.cache.get(PUBLIC_SCOPE_ID, "always_allow")
        if permissions is None:
            permissions = await self.graph.always_allowed_permissions()
            self.cache.set(PUBLIC_SCOPE_ID, permissions, "always_allow")
        return permissions

    async def role_permissions(self, user: User) -> list[Permission]:
        """Union of the permissions bound to the user's roles."""
        permissions = self.cache.get(user.id)
        if permissions is None:
            permissions = await self.graph.permissions_for_user(user.id)
            self.cache.set(user.id, permissions)
            logger.debug("Role permissions resolved", user_id=user.id, count=len(permissions))
        return permissions

    async def effective_permissions(self, user: User) -> list[Permission]:
        """Role permissions of the user plus every always-allowed permission."""
        return merge_permissions(
            await self.role_permissions(user), await self.always_allowed_permissions()
        )

    async def permissions_for(self, user: User) -> list[Permission]:
        """Permissions reported to a client.

        Owners receive the whole universe; everyone else receives the
        permissions bound to their roles. Always-allowed permissions are
        honoured by :meth:`can` but are not listed, so a user without roles
        reports no abilities.
        """
        if await self.is_owner(user):
            return await self.universe()
        return await self.role_permissions(user)

    async def abilities_for(self, user: User) -> list[Ability]:
        """Resolved abilities for a user, unique and in permission order."""
        permissions = await self.permissions_for(user)
        return list(dict.fromkeys(Ability.from_permission(p) for p in permissions))

    async def can(self, user: User | None, action: str, subject: str) -> bool:
        """Check whether ``user`` may perform ``action`` on ``subject``.

        Args:
            user: Authenticated user, or None for anonymous callers.
            action: Action verb.
            subject: Resource name.

        Returns:
            True if any permission grants the request. Never raises.
        """
        try:
            if any(p.matches(action, subject) for p in await self.public_permissions()):
                return True

            if user is None or user.id is None:
                return False

            if await self.is_owner(user):
                return True

            permissions = await self.effective_permissions(user)
            return any(p.matches(action, subject) for p in permissions)
        except Exception as e:
            logger.error(
                "Ability resolution failed",
                user_id=getattr(user, "id", None),
                action=action,
                subject=subject,
                error=str(e),
            )
            return False

    def invalidate(self, user_id: int | None = None) -> None:
        """Drop cached data for one user, or for everyone when no id is given."""
        if user_id is None:
            self.cache.invalidate_all()
        else:
            self.cache.invalidate_user(user_id)
