"""Role repository for database operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.infrastructure.persistence.models import (
    RoleModel,
    RolePermissionModel,
    UserRoleModel,
)


class RoleRepository:
    """Repository for role database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, role: RoleModel) -> RoleModel:
        self.session.add(role)
        await self.session.flush()
        return role

    async def get_by_id(self, role_id: int) -> RoleModel | None:
        """Get a role by ID.

        Args:
            role_id: Role ID.

        Returns:
            Role model if found, None otherwise.
        """
        result = await self.session.execute(select(RoleModel).where(RoleModel.id == role_id))
        return result.scalar_one_or_none()

    async def get_by_ids(self, role_ids: list[int]) -> list[RoleModel]:
        if not role_ids:
            return []
        result = await self.session.execute(
            select(RoleModel).where(RoleModel.id.in_(role_ids)).order_by(RoleModel.order, RoleModel.id)
        )
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> RoleModel | None:
        """Get a role by name.

        Args:
            name: Role name (e.g., 'admin', 'user').

        Returns:
            Role model if found, None otherwise.
        """
        result = await self.session.execute(select(RoleModel).where(RoleModel.name == name))
        return result.scalar_one_or_none()

    async def get_owner_role(self) -> RoleModel | None:
        """Get the most senior owner role, if one exists."""
        result = await self.session.execute(
            select(RoleModel).where(RoleModel.is_owner.is_(True)).order_by(RoleModel.order)
        )
        return result.scalars().first()

    async def name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        query = select(RoleModel.id).where(RoleModel.name == name)
        if exclude_id is not None:
            query = query.where(RoleModel.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def list_with_counts(self) -> list[tuple[RoleModel, int, int]]:
        """List all roles with their user and permission counts.

        Returns:
            List of (role, users_count, permissions_count) ordered by rank.
        """
        users_count = (
            select(UserRoleModel.role_id, func.count().label("n"))
            .group_by(UserRoleModel.role_id)
            .subquery()
        )
        permissions_count = (
            select(RolePermissionModel.role_id, func.count().label("n"))
            .group_by(RolePermissionModel.role_id)
            .subquery()
        )
        result = await self.session.execute(
            select(
                RoleModel,
                func.coalesce(users_count.c.n, 0),
                func.coalesce(permissions_count.c.n, 0),
            )
            .outerjoin(users_count, users_count.c.role_id == RoleModel.id)
            .outerjoin(permissions_count, permissions_count.c.role_id == RoleModel.id)
            .order_by(RoleModel.order, RoleModel.id)
        )
        return [(role, int(users), int(perms)) for role, users, perms in result.all()]
