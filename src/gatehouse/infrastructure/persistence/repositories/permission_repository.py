"""Queries over the permission registry."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.infrastructure.persistence.models import PermissionModel


class PermissionRepository:
    """Permission rows. Writes flush; callers commit."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, permission: PermissionModel) -> PermissionModel:
        self.session.add(permission)
        await self.session.flush()
        return permission

    async def get_by_id(self, permission_id: int) -> PermissionModel | None:
        return await self.session.get(PermissionModel, permission_id)

    async def get_by_key(self, key: str) -> PermissionModel | None:
        result = await self.session.execute(select(PermissionModel).where(PermissionModel.key == key))
        return result.scalar_one_or_none()

    async def key_exists(self, key: str, exclude_id: int | None = None) -> bool:
        """Whether another permission already uses ``key``."""
        query = select(PermissionModel.id).where(PermissionModel.key == key)
        if exclude_id is not None:
            query = query.where(PermissionModel.id != exclude_id)
        return (await self.session.execute(query.limit(1))).first() is not None

    async def list_all(self, search: str | None = None) -> list[PermissionModel]:
        """All permissions in id order, optionally filtered by key or subject."""
        query = select(PermissionModel).order_by(PermissionModel.id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                PermissionModel.key.like(pattern) | PermissionModel.subject.like(pattern)
            )
        return list((await self.session.execute(query)).scalars().all())
