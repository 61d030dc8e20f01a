"""SQLAlchemy model for issued access tokens.

Each bearer token carries a ``jti`` claim equal to the row id. A token is
only accepted while its row exists, which makes revocation immediate.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.infrastructure.persistence.database import Base, utc_now


class AccessTokenModel(Base):
    """Access token model for live bearer token revocation."""

    __tablename__ = "access_tokens"

    # Primary key - token id (JWT jti)
    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="auth_token")

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    def __repr__(self) -> str:
        return f"AccessTokenModel(id={self.id!r}, user_id={self.user_id!r})"
