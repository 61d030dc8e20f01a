"""Authentication API schemas for request/response validation."""

from pydantic import EmailStr, Field

from gatehouse.infrastructure.api.schemas.common import CamelModel
from gatehouse.infrastructure.api.schemas.role_schemas import PermissionResponse, RoleResponse
from gatehouse.infrastructure.api.schemas.user_schemas import UserResponse


class LoginRequest(CamelModel):
    """Request schema for login.

    Attributes:
        email: Email address or username.
        password: Plain-text password.
        remember_me: Issue a long-lived token.
    """

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class AbilityRule(CamelModel):
    id: int
    action: str
    subject: str


class LoginResponse(CamelModel):
    """Payload returned by a successful login."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserResponse
    roles: list[RoleResponse]
    permissions: list[PermissionResponse]
    ability_rules: list[AbilityRule]


class CurrentUserResponse(CamelModel):
    """Snapshot of the authenticated principal."""

    user: UserResponse
    roles: list[RoleResponse]
    permissions: list[PermissionResponse]
    abilities: list[str]


class ForgottenPasswordRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    email: EmailStr
    new_password: str = Field(..., min_length=8)
    new_password_confirmation: str
