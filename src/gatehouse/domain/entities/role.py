"""Role entity for authorization.

Roles group permissions and are shared between users. A role flagged as
owner grants the full permission universe to whoever holds it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from gatehouse.domain.entities.base import field_value
from gatehouse.domain.entities.permission import Permission


@dataclass
class Role:
    """Role entity for user authorization.

    Attributes:
        id: Unique identifier.
        name: Unique role name (e.g., 'super-admin', 'admin', 'user').
        display_name: Human readable name.
        description: Optional description of the role's purpose.
        order: Seniority rank, lower is more senior.
        is_owner: Whether the role is unrestricted.
        permissions: Permissions embedded in an API snapshot of the role.
    """

    id: int | None
    name: str
    display_name: str | None = None
    description: str | None = None
    order: int = 0
    is_owner: bool = False
    permissions: list[Permission] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate role data after initialization."""
        if not self.name:
            raise ValueError("Role name is required")

    @property
    def label(self) -> str:
        """Display name, falling back to the role name."""
        return self.display_name or self.name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Role":
        """Build a role from an API or storage mapping."""
        return cls(
            id=field_value(data, "id"),
            name=field_value(data, "name"),
            display_name=field_value(data, "display_name"),
            description=field_value(data, "description"),
            order=int(field_value(data, "order", 0) or 0),
            is_owner=bool(field_value(data, "is_owner", False)),
            permissions=[
                Permission.from_dict(p) for p in field_value(data, "permissions", None) or []
            ],
        )
