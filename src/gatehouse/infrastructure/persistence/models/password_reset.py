"""Pending password resets, keyed by email."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.domain.entities import PasswordResetToken
from gatehouse.infrastructure.persistence.database import Base, as_utc, utc_now


class PasswordResetTokenModel(Base):
    """Row of ``password_reset_tokens``; ``token_hash`` is a SHA-256 hex digest."""

    __tablename__ = "password_reset_tokens"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    def to_entity(self) -> PasswordResetToken:
        return PasswordResetToken(
            email=self.email,
            token_hash=self.token_hash,
            expires_at=as_utc(self.expires_at),
            created_at=as_utc(self.created_at),
        )

    def __repr__(self) -> str:
        return f"PasswordResetTokenModel(email={self.email!r})"
