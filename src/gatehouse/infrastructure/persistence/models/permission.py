"""SQLAlchemy model for the permissions table.

A permission is an (action, subject) pair with a globally unique key. The
subject "Any" matches every subject.
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.domain.entities import Permission
from gatehouse.infrastructure.persistence.database import Base


class PermissionModel(Base):
    """SQLAlchemy model for the permissions table.

    Attributes:
        id: Auto-incrementing primary key.
        key: Unique permission key.
        action: Action verb.
        subject: Resource name or "Any".
        description: Optional description.
        table_name: Data resource the permission maps to.
        always_allow: Granted to every authenticated user.
        is_public: Granted to unauthenticated callers.
    """

    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    table_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    always_allow: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_entity(self) -> Permission:
        return Permission(
            id=self.id,
            key=self.key,
            action=self.action,
            subject=self.subject,
            description=self.description,
            table_name=self.table_name,
            always_allow=self.always_allow,
            is_public=self.is_public,
        )

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, key={self.key})>"
