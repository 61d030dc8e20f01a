"""User entity for authentication and role membership."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from gatehouse.domain.entities.base import field_value
from gatehouse.domain.entities.role import Role


@dataclass
class User:
    """User entity representing a principal that can authenticate.

    Attributes:
        id: Unique identifier.
        name: Full name.
        email: Email address, unique across users.
        username: Optional login handle, always stored lower-cased.
        password_hash: Hashed password (absent on client-side snapshots).
        active: Whether the account is allowed to use the API.
        avatar: Storage path of the avatar image.
        additional_info: Free-form profile data.
        email_verified_at: When the email address was verified.
        created_at: Timestamp when the user was created.
        updated_at: Timestamp when the user was last updated.
        roles: Roles held by the user.
    """

    id: int | None
    name: str
    email: str
    username: str | None = None
    password_hash: str | None = None
    active: bool = True
    avatar: str | None = None
    additional_info: str | None = None
    email_verified_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    roles: list[Role] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate user data and normalise the username."""
        if not self.email:
            raise ValueError("Email is required")
        if self.username:
            self.username = self.username.lower()

    @property
    def is_owner(self) -> bool:
        """Whether any held role is an owner role."""
        return any(role.is_owner for role in self.roles)

    def has_role(self, name: str) -> bool:
        """Check role membership by name (case-insensitive)."""
        return any(role.name.lower() == name.lower() for role in self.roles)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        """Build a user snapshot from an API payload."""
        return cls(
            id=field_value(data, "id"),
            name=field_value(data, "name") or "",
            email=field_value(data, "email"),
            username=field_value(data, "username"),
            active=bool(field_value(data, "active", True)),
            avatar=field_value(data, "avatar"),
            additional_info=field_value(data, "additional_info"),
            roles=[Role.from_dict(r) for r in field_value(data, "roles", None) or []],
        )


def role_names(user: User) -> list[str]:
    """Display names of the user's roles."""
    return [role.label for role in user.roles]


def avatar_url(user: User, storage_url: str) -> str | None:
    """Public URL of the user's avatar, or None when no avatar is set."""
    if not user.avatar:
        return None
    return f"{storage_url.rstrip('/')}/{user.avatar.lstrip('/')}"
