"""Repository for password reset token operations."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.domain.entities import PasswordResetToken
from gatehouse.infrastructure.persistence.models import PasswordResetTokenModel


class PasswordResetRepository:
    """Repository for password reset token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def put(self, entity: PasswordResetToken) -> PasswordResetToken:
        """Store a reset token, replacing any previous token for the email.

        Args:
            entity: The PasswordResetToken entity to store.

        Returns:
            The stored entity.
        """
        await self.delete_for_email(entity.email)
        self._session.add(
            PasswordResetTokenModel(
                email=entity.email,
                token_hash=entity.token_hash,
                expires_at=entity.expires_at,
                created_at=entity.created_at,
            )
        )
        await self._session.flush()
        return entity

    async def get_by_email(self, email: str) -> PasswordResetToken | None:
        result = await self._session.execute(
            select(PasswordResetTokenModel).where(PasswordResetTokenModel.email == email)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def delete_for_email(self, email: str) -> int:
        result = await self._session.execute(
            delete(PasswordResetTokenModel).where(PasswordResetTokenModel.email == email)
        )
        return result.rowcount
