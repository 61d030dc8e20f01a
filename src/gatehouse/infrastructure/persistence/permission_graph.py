"""SQLAlchemy implementation of the role-permission graph.

Binding rows are managed explicitly: deleting a user, role or permission
removes its junction rows in the same unit of work. Write operations flush
but do not commit; the caller owns the transaction.
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import Permission, Role
from gatehouse.domain.exceptions import ValidationFailed
from gatehouse.domain.services.permission_graph import BindingChanges, PermissionGraph, unique_ids
from gatehouse.infrastructure.persistence.models import (
    AccessTokenModel,
    PasswordResetTokenModel,
    PermissionModel,
    RoleModel,
    RolePermissionModel,
    UserModel,
    UserRoleModel,
)

logger = get_logger(__name__)


class SqlPermissionGraph(PermissionGraph):
    """Permission graph backed by the relational database."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the graph.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    # Reads

    async def _permissions(self, query) -> list[Permission]:
        result = await self.session.execute(query.order_by(PermissionModel.id))
        return [model.to_entity() for model in result.scalars().unique().all()]

    async def permissions_for_user(self, user_id: int) -> list[Permission]:
        query = (
            select(PermissionModel)
            .join(RolePermissionModel, RolePermissionModel.permission_id == PermissionModel.id)
            .join(UserRoleModel, UserRoleModel.role_id == RolePermissionModel.role_id)
            .where(UserRoleModel.user_id == user_id)
            .distinct()
        )
        return await self._permissions(query)

    async def roles_for_user(self, user_id: int) -> list[Role]:
        result = await self.session.execute(
            select(RoleModel)
            .join(UserRoleModel, UserRoleModel.role_id == RoleModel.id)
            .where(UserRoleModel.user_id == user_id)
            .order_by(RoleModel.order, RoleModel.id)
        )
        return [model.to_entity() for model in result.scalars().all()]

    async def roles_for_users(self, user_ids: list[int]) -> dict[int, list[Role]]:
        """Roles of several users in one query, keyed by user id."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(UserRoleModel.user_id, RoleModel)
            .join(RoleModel, RoleModel.id == UserRoleModel.role_id)
            .where(UserRoleModel.user_id.in_(user_ids))
            .order_by(RoleModel.order, RoleModel.id)
        )
        roles: dict[int, list[Role]] = {user_id: [] for user_id in user_ids}
        for user_id, model in result.all():
            roles[user_id].append(model.to_entity())
        return roles

    async def permissions_for_role(self, role_id: int) -> list[Permission]:
        query = (
            select(PermissionModel)
            .join(RolePermissionModel, RolePermissionModel.permission_id == PermissionModel.id)
            .where(RolePermissionModel.role_id == role_id)
        )
        return await self._permissions(query)

    async def common_permissions(self, role_ids: list[int]) -> list[Permission]:
        ids = unique_ids(role_ids)
        if not ids:
            return []
        shared = (
            select(RolePermissionModel.permission_id)
            .where(RolePermissionModel.role_id.in_(ids))
            .group_by(RolePermissionModel.permission_id)
            .having(func.count(RolePermissionModel.role_id) == len(ids))
        )
        return await self._permissions(select(PermissionModel).where(PermissionModel.id.in_(shared)))

    async def all_permissions(self) -> list[Permission]:
        return await self._permissions(select(PermissionModel))

    async def public_permissions(self) -> list[Permission]:
        return await self._permissions(
            select(PermissionModel).where(PermissionModel.is_public.is_(True))
        )

    async def always_allowed_permissions(self) -> list[Permission]:
        return await self._permissions(
            select(PermissionModel).where(PermissionModel.always_allow.is_(True))
        )

    # Role-permission bindings

    async def _require_role(self, role_id: int) -> None:
        if await self.session.get(RoleModel, role_id) is None:
            raise ValidationFailed.for_field("role_id", "exists", "The selected role is invalid.")

    async def _require_permissions(self, permission_ids: list[int]) -> list[int]:
        ids = unique_ids(permission_ids)
        if ids:
            result = await self.session.execute(
                select(PermissionModel.id).where(PermissionModel.id.in_(ids))
            )
            if len(set(result.scalars().all())) != len(ids):
                raise ValidationFailed.for_field(
                    "permission_ids", "exists", "The selected permission ids is invalid."
                )
        return ids

    async def _bound_permission_ids(self, role_id: int) -> set[int]:
        result = await self.session.execute(
            select(RolePermissionModel.permission_id).where(RolePermissionModel.role_id == role_id)
        )
        return set(result.scalars().all())

    async def attach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        await self._require_role(role_id)
        ids = await self._require_permissions(permission_ids)
        bound = await self._bound_permission_ids(role_id)
        added = [i for i in ids if i not in bound]
        self.session.add_all(RolePermissionModel(role_id=role_id, permission_id=i) for i in added)
        await self.session.flush()
        return added

    async def detach_permissions(self, role_id: int, permission_ids: list[int]) -> list[int]:
        await self._require_role(role_id)
        bound = await self._bound_permission_ids(role_id)
        removed = [i for i in unique_ids(permission_ids) if i in bound]
        if removed:
            await self.session.execute(
                delete(RolePermissionModel).where(
                    RolePermissionModel.role_id == role_id,
                    RolePermissionModel.permission_id.in_(removed),
                )
            )
        return removed

    async def sync_permissions(self, role_id: int, permission_ids: list[int]) -> BindingChanges:
        await self._require_role(role_id)
        wanted = await self._require_permissions(permission_ids)
        bound = await self._bound_permission_ids(role_id)
        changes = BindingChanges(
            attached=[i for i in wanted if i not in bound],
            detached=sorted(bound - set(wanted)),
        )
        if changes.detached:
            await self.session.execute(
                delete(RolePermissionModel).where(
                    RolePermissionModel.role_id == role_id,
                    RolePermissionModel.permission_id.in_(changes.detached),
                )
            )
        self.session.add_all(
            RolePermissionModel(role_id=role_id, permission_id=i) for i in changes.attached
        )
        await self.session.flush()
        return changes

    # User-role bindings

    async def _require_user(self, user_id: int) -> None:
        if await self.session.get(UserModel, user_id) is None:
            raise ValidationFailed.for_field("user_id", "exists", "The selected user is invalid.")

    async def _require_roles(self, role_ids: list[int]) -> list[int]:
        ids = unique_ids(role_ids)
        if ids:
            result = await self.session.execute(select(RoleModel.id).where(RoleModel.id.in_(ids)))
            if len(set(result.scalars().all())) != len(ids):
                raise ValidationFailed.for_field("roles", "exists", "The selected roles is invalid.")
        return ids

    async def _held_role_ids(self, user_id: int) -> set[int]:
        result = await self.session.execute(
            select(UserRoleModel.role_id).where(UserRoleModel.user_id == user_id)
        )
        return set(result.scalars().all())

    async def assign_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        await self._require_user(user_id)
        ids = await self._require_roles(role_ids)
        held = await self._held_role_ids(user_id)
        added = [i for i in ids if i not in held]
        self.session.add_all(UserRoleModel(user_id=user_id, role_id=i) for i in added)
        await self.session.flush()
        return added

    async def detach_roles(self, user_id: int, role_ids: list[int]) -> list[int]:
        await self._require_user(user_id)
        held = await self._held_role_ids(user_id)
        removed = [i for i in unique_ids(role_ids) if i in held]
        if removed:
            await self.session.execute(
                delete(UserRoleModel).where(
                    UserRoleModel.user_id == user_id, UserRoleModel.role_id.in_(removed)
                )
            )
        return removed

    async def sync_roles(self, user_id: int, role_ids: list[int]) -> BindingChanges:
        await self._require_user(user_id)
        wanted = await self._require_roles(role_ids)
        held = await self._held_role_ids(user_id)
        changes = BindingChanges(
            attached=[i for i in wanted if i not in held],
            detached=sorted(held - set(wanted)),
        )
        if changes.detached:
            await self.session.execute(
                delete(UserRoleModel).where(
                    UserRoleModel.user_id == user_id,
                    UserRoleModel.role_id.in_(changes.detached),
                )
            )
        self.session.add_all(UserRoleModel(user_id=user_id, role_id=i) for i in changes.attached)
        await self.session.flush()
        return changes

    # Cascading deletes

    async def delete_role(self, role_id: int) -> bool:
        role = await self.session.get(RoleModel, role_id)
        if role is None:
            return False
        try:
            await self.session.execute(
                delete(RolePermissionModel).where(RolePermissionModel.role_id == role_id)
            )
            await self.session.execute(delete(UserRoleModel).where(UserRoleModel.role_id == role_id))
            await self.session.delete(role)
            await self.session.flush()
        except Exception as e:
            await self.session.rollback()
            logger.error("Role delete failed", role_id=role_id, error=str(e))
            raise
        return True

    async def delete_permission(self, permission_id: int) -> bool:
        permission = await self.session.get(PermissionModel, permission_id)
        if permission is None:
            return False
        try:
            await self.session.execute(
                delete(RolePermissionModel).where(RolePermissionModel.permission_id == permission_id)
            )
            await self.session.delete(permission)
            await self.session.flush()
        except Exception as e:
            await self.session.rollback()
            logger.error("Permission delete failed", permission_id=permission_id, error=str(e))
            raise
        return True

    async def delete_user(self, user_id: int) -> bool:
        user = await self.session.get(UserModel, user_id)
        if user is None:
            return False
        try:
            await self.session.execute(delete(UserRoleModel).where(UserRoleModel.user_id == user_id))
            await self.session.execute(
                delete(AccessTokenModel).where(AccessTokenModel.user_id == user_id)
            )
            await self.session.execute(
                delete(PasswordResetTokenModel).where(PasswordResetTokenModel.email == user.email)
            )
            await self.session.delete(user)
            await self.session.flush()
        except Exception as e:
            await self.session.rollback()
            logger.error("User delete failed", user_id=user_id, error=str(e))
            raise
        return True
