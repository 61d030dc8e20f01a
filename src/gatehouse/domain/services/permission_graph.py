"""Role-permission graph.

The graph stores users, roles, permissions and the two many-to-many bindings
between them (user to role, role to permission). It is the single source of
truth the ability resolver reads from.

Two implementations exist: :class:`InMemoryPermissionGraph` here, used by
small deployments and tests, and the SQLAlchemy-backed graph in the
persistence layer.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from gatehouse.domain.entities import Permission, Role
from gatehouse.domain.exceptions import ValidationFailed


@dataclass
class BindingChanges:
    """Ids attached and detached by a sync operation."""

    attached: list[int] = field(default_factory=list)
    detached: list[int] = field(default_factory=list)


def unique_ids(ids: Iterable[int]) -> list[int]:
    """De-duplicate ids keeping their first-seen order."""
    return list(dict.fromkeys(int(i) for i in ids))


class PermissionGraph(ABC):
    """Async interface over the role-permission graph."""

    @abstractmethod
    async def permissions_for_user(self, user_id: int) -> list[Permission]:
        """Union of the permissions of every role the user holds.

        Each permission appears once even when several roles grant it.
        """

    @abstractmethod
    async def roles_for_user(self, user_id: int) -> list[Role]:
        """Roles held by the user, most senior first."""

    @abstractmethod
    async def permissions_for_role(self, role_id: int) -> list[Permission]:
        """Permissions bound to a role."""

    @abstractmethod
    async def common_permissions(self, role_ids: list[int]) -> list[Permission]:
        """Permissions bound to every one of the given roles."""

    @abstractmethod
    async def all_permissions(self) -> list[Permission]:
        """Every registered permission."""

    @abstractmethod
    async def public_permissions(self) -> list[Permission]:
        """Permissions granted to unauthenticated callers."""

    @abstractmethod
    async def always_allowed_permissions(self) -> list[Permission]:
        """Permissions granted to every authenticated user."""

    @abstractmethod
    async def attach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        """Bind permissions to a role without touching existing bindings.

        Returns:
            Ids that were not bound before.
        """

    @abstractmethod
    async def detach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        """Remove role-permission bindings.

        Returns:
            Ids that were actually bound and are now removed.
        """

    @abstractmethod
    async def sync_permissions(self, role_id: int, permission_ids: list[int]) -> BindingChanges:
        """Make the role's permission set exactly ``permission_ids``."""

    @abstractmethod
    async def assign_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        """Give roles to a user. Returns the newly assigned ids."""

    @abstractmethod
    async def detach_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        """Take roles from a user. Returns the removed ids."""

    @abstractmethod
    async def sync_roles(self, user_id: int, role_ids: list[int]) -> BindingChanges:
        """Make the user's role set exactly ``role_ids``."""

    @abstractmethod
    async def delete_role(self, role_id: int) -> bool:
        """Delete a role along with all of its bindings."""

    @abstractmethod
    async def delete_permission(self, permission_id: int) -> bool:
        """Delete a permission along with its role bindings."""

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        """Delete a user's role bindings and the user record."""


class InMemoryPermissionGraph(PermissionGraph):
    """Permission graph held in indexed dictionaries.

    Not safe for concurrent mutation from several threads; intended for a
    single event loop.
    """

    def __init__(self) -> None:
        self._roles: dict[int, Role] = {}
        self._permissions: dict[int, Permission] = {}
        self._users: set[int] = set()
        self._role_permissions: dict[int, set[int]] = {}
        self._user_roles: dict[int, set[int]] = {}

    # Registration

    def add_role(self, role: Role) -> Role:
        """Register a role, assigning an id when it has none."""
        if role.id is None:
            role.id = max(self._roles, default=0) + 1
        self._roles[role.id] = role
        self._role_permissions.setdefault(role.id, set())
        return role

    def add_permission(self, permission: Permission) -> Permission:
        """Register a permission.

        Raises:
            ValidationFailed: If another permission already uses the key.
        """
        for existing in self._permissions.values():
            if existing.key == permission.key and existing.id != permission.id:
                raise ValidationFailed.for_field(
                    "key", "unique", "The key has already been taken."
                )
        if permission.id is None:
            permission.id = max(self._permissions, default=0) + 1
        self._permissions[permission.id] = permission
        return permission

    def add_user(self, user_id: int) -> None:
        """Register a user id so roles can be assigned to it."""
        self._users.add(user_id)
        self._user_roles.setdefault(user_id, set())

    # Reads

    def _sorted_permissions(self, ids: Iterable[int]) -> list[Permission]:
        return [self._permissions[i] for i in sorted(ids) if i in self._permissions]

    async def permissions_for_user(self, user_id: int) -> list[Permission]:
        ids: set[int] = set()
        for role_id in self._user_roles.get(user_id, set()):
            ids |= self._role_permissions.get(role_id, set())
        return self._sorted_permissions(ids)

    async def roles_for_user(self, user_id: int) -> list[Role]:
        roles = [self._roles[i] for i in self._user_roles.get(user_id, set()) if i in self._roles]
        return sorted(roles, key=lambda r: (r.order, r.id))

    async def permissions_for_role(self, role_id: int) -> list[Permission]:
        return self._sorted_permissions(self._role_permissions.get(role_id, set()))

    async def common_permissions(self, role_ids: list[int]) -> list[Permission]:
        if not role_ids:
            return []
        sets = [self._role_permissions.get(r, set()) for r in unique_ids(role_ids)]
        return self._sorted_permissions(set.intersection(*sets))

    async def all_permissions(self) -> list[Permission]:
        return self._sorted_permissions(self._permissions)

    async def public_permissions(self) -> list[Permission]:
        return [p for p in await self.all_permissions() if p.is_public]

    async def always_allowed_permissions(self) -> list[Permission]:
        return [p for p in await self.all_permissions() if p.always_allow]

    # Role-permission bindings

    def _require_role(self, role_id: int) -> set[int]:
        if role_id not in self._roles:
            raise ValidationFailed.for_field("role_id", "exists", "The selected role is invalid.")
        return self._role_permissions[role_id]

    def _require_permissions(self, permission_ids: list[int]) -> list[int]:
        ids = unique_ids(permission_ids)
        if any(i not in self._permissions for i in ids):
            raise ValidationFailed.for_field(
                "permission_ids", "exists", "The selected permission ids is invalid."
            )
        return ids

    async def attach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        bound = self._require_role(role_id)
        added = [i for i in self._require_permissions(permission_ids) if i not in bound]
        bound.update(added)
        return added

    async def detach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        bound = self._require_role(role_id)
        removed = [i for i in unique_ids(permission_ids) if i in bound]
        bound.difference_update(removed)
        return removed

    async def sync_permissions(self, role_id: int, permission_ids: list[int]) -> BindingChanges:
        bound = self._require_role(role_id)
        wanted = self._require_permissions(permission_ids)
        changes = BindingChanges(
            attached=[i for i in wanted if i not in bound],
            detached=sorted(bound - set(wanted)),
        )
        bound.clear()
        bound.update(wanted)
        return changes

    # User-role bindings

    def _require_user(self, user_id: int) -> set[int]:
        if user_id not in self._users:
            raise ValidationFailed.for_field("user_id", "exists", "The selected user is invalid.")
        return self._user_roles[user_id]

    def _require_roles(self, role_ids: list[int]) -> list[int]:
        ids = unique_ids(role_ids)
        if any(i not in self._roles for i in ids):
            raise ValidationFailed.for_field("roles", "exists", "The selected roles is invalid.")
        return ids

    async def assign_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        held = self._require_user(user_id)
        added = [i for i in self._require_roles(role_ids) if i not in held]
        held.update(added)
        return added

    async def detach_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        held = self._require_user(user_id)
        removed = [i for i in unique_ids(role_ids) if i in held]
        held.difference_update(removed)
        return removed

    async def sync_roles(self, user_id: int, role_ids: list[int]) -> BindingChanges:
        held = self._require_user(user_id)
        wanted = self._require_roles(role_ids)
        changes = BindingChanges(
            attached=[i for i in wanted if i not in held],
            detached=sorted(held - set(wanted)),
        )
        held.clear()
        held.update(wanted)
        return changes

    # Cascading deletes

    async def delete_role(self, role_id: int) -> bool:
        if self._roles.pop(role_id, None) is None:
            return False
        self._role_permissions.pop(role_id, None)
        for held in self._user_roles.values():
            held.discard(role_id)
        return True

    async def delete_permission(self, permission_id: int) -> bool:
        if self._permissions.pop(permission_id, None) is None:
            return False
        for bound in self._role_permissions.values():
            bound.discard(permission_id)
        return True

    async def delete_user(self, user_id: int) -> bool:
        if user_id not in self._users:
            return False
        self._users.discard(user_id)
        self._user_roles.pop(user_id, None)
        return True
