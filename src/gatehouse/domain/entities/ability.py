"""Ability value object.

An ability is a resolved ``(action, subject)`` pair. It is never persisted;
clients cache the string form ``"{action}:{subject}"`` for the lifetime of a
session.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from gatehouse.domain.entities.permission import Permission


@dataclass(frozen=True)
class Ability:
    """Resolved permission instance."""

    action: str
    subject: str

    @property
    def key(self) -> str:
        return f"{self.action}:{self.subject}"

    @classmethod
    def from_permission(cls, permission: Permission) -> "Ability":
        return cls(action=permission.action, subject=permission.subject)

    @classmethod
    def from_key(cls, key: str) -> "Ability":
        """Parse ``"action:subject"``."""
        action, sep, subject = key.partition(":")
        if not sep or not action or not subject:
            raise ValueError(f"Invalid ability key: {key!r}")
        return cls(action=action, subject=subject)


def ability_keys(permissions: Iterable[Permission]) -> list[str]:
    """Unique ability keys for a permission set, in first-seen order."""
    return list(dict.fromkeys(Ability.from_permission(p).key for p in permissions))
