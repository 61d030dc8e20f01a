"""Repository for access token operations.

Provides database operations for recording, validating and revoking issued
bearer tokens.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.infrastructure.persistence.database import as_utc
from gatehouse.infrastructure.persistence.models import AccessTokenModel


class AccessTokenRepository:
    """Repository for access token database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(
        self,
        token_id: str,
        user_id: int,
        expires_at: datetime,
        name: str = "auth_token",
    ) -> AccessTokenModel:
        """Record a newly issued token.

        Args:
            token_id: The token's ``jti`` claim.
            user_id: Owner of the token.
            expires_at: When the token expires.
            name: Token label.

        Returns:
            The stored token model.
        """
        model = AccessTokenModel(id=token_id, user_id=user_id, name=name, expires_at=expires_at)
        self.session.add(model)
        await self.session.flush()
        return model

    async def get_active(self, token_id: str) -> AccessTokenModel | None:
        """Get a token record if it exists and has not expired."""
        result = await self.session.execute(
            select(AccessTokenModel).where(AccessTokenModel.id == token_id)
        )
        model = result.scalar_one_or_none()
        if model is None or as_utc(model.expires_at) <= datetime.now(timezone.utc):
            return None
        return model

    async def touch(self, model: AccessTokenModel) -> None:
        """Update the last-used timestamp of a token."""
        model.last_used_at = datetime.now(timezone.utc)
        await self.session.flush()

    async def delete(self, token_id: str) -> bool:
        """Revoke a single token.

        Returns:
            True if a token was removed.
        """
        result = await self.session.execute(
            delete(AccessTokenModel).where(AccessTokenModel.id == token_id)
        )
        return result.rowcount > 0

    async def delete_all_for_user(self, user_id: int) -> int:
        """Revoke every token of a user.

        Returns:
            Number of tokens removed.
        """
        result = await self.session.execute(
            delete(AccessTokenModel).where(AccessTokenModel.user_id == user_id)
        )
        return result.rowcount

    async def delete_expired(self) -> int:
        """Delete all expired tokens.

        Returns:
            Number of tokens deleted.
        """
        result = await self.session.execute(
            delete(AccessTokenModel).where(
                AccessTokenModel.expires_at < datetime.now(timezone.utc)
            )
        )
        return result.rowcount
