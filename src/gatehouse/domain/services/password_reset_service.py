"""Service for password reset logic.

Handles token issuance and resetting passwords. A reset revokes every access
token of the user.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import PasswordResetToken
from gatehouse.domain.exceptions import ValidationFailed
from gatehouse.infrastructure.auth import hash_password
from gatehouse.infrastructure.persistence.models import UserModel
from gatehouse.infrastructure.persistence.repositories import (
    AccessTokenRepository,
    PasswordResetRepository,
    UserRepository,
)
from gatehouse.infrastructure.services import PasswordResetNotifier

logger = get_logger(__name__)


class PasswordResetService:
    """Service for handling password reset business logic."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: PasswordResetNotifier,
        expires_in_seconds: int = 3600,
    ) -> None:
        """Initialize the password reset service.

        Args:
            session: SQLAlchemy async session.
            notifier: Collaborator that delivers the raw token.
            expires_in_seconds: Token lifetime.
        """
        self.session = session
        self.notifier = notifier
        self.expires_in_seconds = expires_in_seconds
        self.user_repo = UserRepository(session)
        self.reset_repo = PasswordResetRepository(session)
        self.token_repo = AccessTokenRepository(session)

    async def request_reset(self, email: str) -> None:
        """Issue a reset token for ``email`` and hand it to the notifier.

        Unknown addresses are ignored so callers cannot probe which accounts
        exist.
        """
        user = await self.user_repo.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        entity, raw_token = PasswordResetToken.generate(
            user.email, expires_in_seconds=self.expires_in_seconds
        )
        await self.reset_repo.put(entity)
        await self.session.commit()

        await self.notifier.send_reset_link(user.email, raw_token)
        logger.info("Password reset token issued", user_id=user.id)

    async def reset_password(self, email: str, token: str, new_password: str) -> UserModel:
        """Reset a user's password using a valid token.

        Args:
            email: Email the token was issued for.
            token: The raw token string sent to the user.
            new_password: The new password to set.

        Returns:
            The updated user model.

        Raises:
            ValidationFailed: If the token is unknown, mismatched or expired.
        """
        record = await self.reset_repo.get_by_email(email)
        if record is None or not record.matches(token) or not record.is_valid():
            logger.info("Password reset failed: token invalid or expired")
            raise ValidationFailed.for_field(
                "token", "invalid", "This password reset token is invalid."
            )

        user = await self.user_repo.get_by_email(email)
        if user is None:
            await self.reset_repo.delete_for_email(email)
            await self.session.commit()
            raise ValidationFailed.for_field(
                "email", "exists", "We can't find a user with that email address."
            )

        user.password_hash = hash_password(new_password)
        await self.reset_repo.delete_for_email(email)
        revoked = await self.token_repo.delete_all_for_user(user.id)
        await self.session.commit()

        logger.info("Password reset successfully", user_id=user.id, tokens_revoked=revoked)
        return user
