"""Repositories wrapping database access for each table."""

from gatehouse.infrastructure.persistence.repositories.access_token_repository import (
    AccessTokenRepository,
)
from gatehouse.infrastructure.persistence.repositories.password_reset_repository import (
    PasswordResetRepository,
)
from gatehouse.infrastructure.persistence.repositories.permission_repository import (
    PermissionRepository,
)
from gatehouse.infrastructure.persistence.repositories.role_repository import RoleRepository
from gatehouse.infrastructure.persistence.repositories.user_repository import UserRepository

__all__ = [
    "AccessTokenRepository",
    "PasswordResetRepository",
    "PermissionRepository",
    "RoleRepository",
    "UserRepository",
]
