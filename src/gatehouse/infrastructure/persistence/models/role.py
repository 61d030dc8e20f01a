"""SQLAlchemy model for the roles table."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.domain.entities import Role
from gatehouse.infrastructure.persistence.database import Base


class RoleModel(Base):
    """SQLAlchemy model for the roles table.

    Attributes:
        id: Auto-incrementing primary key.
        name: Unique role name.
        display_name: Human readable name.
        description: Optional description of the role's purpose.
        order: Seniority rank, lower is more senior.
        is_owner: Whether holders are granted every permission.
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Role name (e.g., 'super-admin', 'user')",
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Description of the role's purpose",
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_entity(self) -> Role:
        return Role(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            order=self.order,
            is_owner=self.is_owner,
        )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"
