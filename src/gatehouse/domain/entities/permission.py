"""Permission entity for role-based access control.

A permission names an ``action`` on a ``subject``. The subject ``"Any"`` is a
wildcard matching every subject for that action.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from gatehouse.domain.entities.base import field_value

ANY_SUBJECT = "Any"


@dataclass
class Permission:
    """Permission entity for access control.

    Attributes:
        id: Unique identifier.
        key: Globally unique key (e.g., 'manage-users').
        action: Action verb (e.g., 'view', 'edit', 'manage').
        subject: Resource name or ``"Any"``.
        description: Optional description.
        table_name: Data resource the permission maps to, if any.
        always_allow: Granted to every authenticated user regardless of role.
        is_public: Granted even to unauthenticated callers.
    """

    id: int | None
    key: str
    action: str
    subject: str
    description: str | None = None
    table_name: str | None = None
    always_allow: bool = False
    is_public: bool = False

    def __post_init__(self) -> None:
        """Validate permission after initialization."""
        if not self.key:
            raise ValueError("Permission key is required")
        if not self.action:
            raise ValueError("Permission action is required")
        if not self.subject:
            raise ValueError("Permission subject is required")

    @property
    def is_wildcard(self) -> bool:
        """Whether the permission applies to every subject."""
        return self.subject == ANY_SUBJECT

    def matches(self, action: str, subject: str) -> bool:
        """Check whether this permission grants ``action`` on ``subject``."""
        return self.action == action and (self.subject == subject or self.is_wildcard)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Permission":
        """Build a permission from an API or storage mapping.

        Client payloads may carry only ``action`` and ``subject``; the key
        then defaults to ``"{action}-{subject}"``.
        """
        action = field_value(data, "action")
        subject = field_value(data, "subject")
        return cls(
            id=field_value(data, "id"),
            key=field_value(data, "key") or f"{action}-{subject}",
            action=action,
            subject=subject,
            description=field_value(data, "description"),
            table_name=field_value(data, "table_name"),
            always_allow=bool(field_value(data, "always_allow", False)),
            is_public=bool(field_value(data, "is_public", False)),
        )
