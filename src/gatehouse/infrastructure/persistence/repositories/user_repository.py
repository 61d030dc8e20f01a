"""User repository for database operations."""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.infrastructure.persistence.models import UserModel


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        """Create a new user.

        Args:
            user: User model to create.

        Returns:
            Created user model.
        """
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> UserModel | None:
        """Get a user by ID.

        Args:
            user_id: User ID.

        Returns:
            User model if found, None otherwise.
        """
        result = await self.session.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_ids(self, user_ids: list[int]) -> list[UserModel]:
        if not user_ids:
            return []
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(user_ids)).order_by(UserModel.id)
        )
        return list(result.scalars().all())

    async def get_by_email(self, email: str) -> UserModel | None:
        result = await self.session.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_login(self, login: str) -> UserModel | None:
        """Find a user by email address or username.

        Args:
            login: Email or username, matched case-insensitively.

        Returns:
            User model if found, None otherwise.
        """
        login = login.lower()
        result = await self.session.execute(
            select(UserModel).where(
                or_(func.lower(UserModel.email) == login, UserModel.username == login)
            )
        )
        return result.scalars().first()

    async def email_exists(self, email: str, exclude_id: int | None = None) -> bool:
        query = select(UserModel.id).where(func.lower(UserModel.email) == email.lower())
        if exclude_id is not None:
            query = query.where(UserModel.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def username_exists(self, username: str, exclude_id: int | None = None) -> bool:
        query = select(UserModel.id).where(UserModel.username == username.lower())
        if exclude_id is not None:
            query = query.where(UserModel.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def list_paginated(
        self, skip: int = 0, limit: int = 25, search: str | None = None
    ) -> tuple[list[UserModel], int]:
        """List users with optional search on name, email and username.

        Args:
            skip: Number of records to skip.
            limit: Maximum number of records to return.
            search: Optional substring filter.

        Returns:
            Tuple of (users, total count).
        """
        query = select(UserModel)
        count_query = select(func.count(UserModel.id))
        if search:
            pattern = f"%{search.lower()}%"
            condition = or_(
                func.lower(UserModel.name).like(pattern),
                func.lower(UserModel.email).like(pattern),
                UserModel.username.like(pattern),
            )
            query = query.where(condition)
            count_query = count_query.where(condition)

        total = (await self.session.execute(count_query)).scalar_one()
        result = await self.session.execute(
            query.order_by(UserModel.id).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total
