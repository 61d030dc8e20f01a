"""Domain services for Gatehouse.

Services contain business logic that does not belong to a single entity.
"""

from gatehouse.domain.services.ability_resolver import AbilityResolver
from gatehouse.domain.services.authorization_gate import AuthorizationGate
from gatehouse.domain.services.identity_store import AuthResult, Credentials, IdentityStore
from gatehouse.domain.services.permission_cache import PermissionCache
from gatehouse.domain.services.permission_graph import (
    BindingChanges,
    InMemoryPermissionGraph,
    PermissionGraph,
)

__all__ = [
    "AbilityResolver",
    "AuthResult",
    "AuthorizationGate",
    "BindingChanges",
    "Credentials",
    "IdentityStore",
    "InMemoryPermissionGraph",
    "PermissionCache",
    "PermissionGraph",
]
