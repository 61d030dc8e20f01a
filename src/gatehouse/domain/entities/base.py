"""Helpers shared by entity constructors.

API payloads use camelCase keys while the database layer uses snake_case.
Entities built from mappings accept either form.
"""

from collections.abc import Mapping
from typing import Any


def camel_case(name: str) -> str:
    """Convert a snake_case name to camelCase."""
    head, *tail = name.split("_")
    return head + "".join(part.capitalize() for part in tail)


def field_value(data: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping, falling back to its camelCase spelling."""
    if name in data:
        return data[name]
    return data.get(camel_case(name), default)
