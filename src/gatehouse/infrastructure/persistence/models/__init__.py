"""SQLAlchemy models for Gatehouse tables.

All models inherit from the Base class defined in database.py and are
registered with its metadata on import.
"""

from gatehouse.infrastructure.persistence.models.access_token import AccessTokenModel
from gatehouse.infrastructure.persistence.models.bindings import (
    RolePermissionModel,
    UserRoleModel,
)
from gatehouse.infrastructure.persistence.models.password_reset import PasswordResetTokenModel
from gatehouse.infrastructure.persistence.models.permission import PermissionModel
from gatehouse.infrastructure.persistence.models.role import RoleModel
from gatehouse.infrastructure.persistence.models.user import UserModel

__all__ = [
    "AccessTokenModel",
    "PasswordResetTokenModel",
    "PermissionModel",
    "RoleModel",
    "RolePermissionModel",
    "UserModel",
    "UserRoleModel",
]
