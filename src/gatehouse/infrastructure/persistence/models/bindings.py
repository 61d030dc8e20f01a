"""SQLAlchemy models for the role_permissions and user_roles junction tables.

Both are pure associative rows. Rows are removed explicitly by the
permission graph when either side is deleted.
"""

from sqlalchemy import ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from gatehouse.infrastructure.persistence.database import Base


class RolePermissionModel(Base):
    """Junction table between roles and permissions.

    Attributes:
        role_id: Foreign key to roles table.
        permission_id: Foreign key to permissions table.
    """

    __tablename__ = "role_permissions"

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id"),
        primary_key=True,
        comment="Foreign key to roles table",
    )
    permission_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("permissions.id"),
        primary_key=True,
        index=True,
        comment="Foreign key to permissions table",
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"


class UserRoleModel(Base):
    """Junction table between users and roles.

    Attributes:
        user_id: Foreign key to users table.
        role_id: Foreign key to roles table.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        primary_key=True,
        comment="Foreign key to users table",
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("roles.id"),
        primary_key=True,
        index=True,
        comment="Foreign key to roles table",
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"
