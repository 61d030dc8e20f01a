"""Domain entities for Gatehouse.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from gatehouse.domain.entities.ability import Ability, ability_keys
from gatehouse.domain.entities.password_reset import PasswordResetToken
from gatehouse.domain.entities.permission import ANY_SUBJECT, Permission
from gatehouse.domain.entities.role import Role
from gatehouse.domain.entities.user import User, avatar_url, role_names

__all__ = [
    "ANY_SUBJECT",
    "Ability",
    "PasswordResetToken",
    "Permission",
    "Role",
    "User",
    "ability_keys",
    "avatar_url",
    "role_names",
]
