"""API request and response schemas."""

from gatehouse.infrastructure.api.schemas.auth_schemas import (
    AbilityRule,
    CurrentUserResponse,
    ForgottenPasswordRequest,
    LoginRequest,
    LoginResponse,
    ResetPasswordRequest,
)
from gatehouse.infrastructure.api.schemas.common import (
    ApiResponse,
    CamelModel,
    IdsRequest,
    MessageData,
    ok,
)
from gatehouse.infrastructure.api.schemas.role_schemas import (
    PermissionIdsRequest,
    PermissionRequest,
    PermissionResponse,
    RoleBindingChange,
    RoleListItem,
    RolePermissionsResult,
    RoleRequest,
    RoleResponse,
)
from gatehouse.infrastructure.api.schemas.user_schemas import (
    ChangePasswordRequest,
    SetRolesRequest,
    UserCreateRequest,
    UserIdsRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)

__all__ = [
    "AbilityRule",
    "ApiResponse",
    "CamelModel",
    "ChangePasswordRequest",
    "CurrentUserResponse",
    "ForgottenPasswordRequest",
    "IdsRequest",
    "LoginRequest",
    "LoginResponse",
    "MessageData",
    "PermissionIdsRequest",
    "PermissionRequest",
    "PermissionResponse",
    "ResetPasswordRequest",
    "RoleBindingChange",
    "RoleListItem",
    "RolePermissionsResult",
    "RoleRequest",
    "RoleResponse",
    "SetRolesRequest",
    "UserCreateRequest",
    "UserIdsRequest",
    "UserListResponse",
    "UserResponse",
    "UserUpdateRequest",
    "ok",
]
