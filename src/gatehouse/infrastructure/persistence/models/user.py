"""SQLAlchemy model for the users table."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from gatehouse.domain.entities import Role, User
from gatehouse.infrastructure.persistence.database import Base, utc_now


class UserModel(Base):
    """SQLAlchemy model for the users table.

    Role membership lives in ``user_roles``; the model has no ORM
    relationship to it so cascades stay explicit.

    Attributes:
        id: Auto-incrementing primary key.
        name: Full name.
        username: Optional login handle, stored lower-cased.
        email: Unique email address.
        password_hash: Argon2 password hash.
        active: Whether the user may use the API.
        avatar: Storage path of the avatar image.
        additional_info: Free-form profile text.
        email_verified_at: When the email address was verified.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Lower-cased login handle",
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Hashed password (argon2)",
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the user can use the API",
    )
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)
    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    @validates("username")
    def lower_username(self, key: str, value: str | None) -> str | None:
        return value.lower() if value else value

    def to_entity(self, roles: list[Role] | None = None) -> User:
        """Convert to a domain entity."""
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            username=self.username,
            password_hash=self.password_hash,
            active=self.active,
            avatar=self.avatar,
            additional_info=self.additional_info,
            email_verified_at=self.email_verified_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
            roles=roles or [],
        )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, active={self.active})>"
