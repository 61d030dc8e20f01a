"""User API schemas for request/response validation."""

from datetime import datetime

from pydantic import EmailStr, Field

from gatehouse.domain.entities import User, avatar_url, role_names
from gatehouse.infrastructure.api.schemas.common import CamelModel
from gatehouse.infrastructure.api.schemas.role_schemas import RoleResponse


class UserResponse(CamelModel):
    """Serialized user with derived display fields."""

    id: int
    name: str
    username: str | None = None
    email: str
    active: bool
    avatar: str | None = None
    additional_info: str | None = None
    email_verified_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    roles: list[RoleResponse] = []
    role_names: list[str] = []
    avatar_url: str | None = None

    @classmethod
    def from_user(cls, user: User, storage_url: str) -> "UserResponse":
        """Serialize a user entity, computing ``role_names`` and ``avatar_url``."""
        return cls(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            active=user.active,
            avatar=user.avatar,
            additional_info=user.additional_info,
            email_verified_at=user.email_verified_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
            roles=[RoleResponse.model_validate(role) for role in user.roles],
            role_names=role_names(user),
            avatar_url=avatar_url(user, storage_url),
        )


class UserListResponse(CamelModel):
    items: list[UserResponse]
    total: int
    page: int
    page_size: int


class UserCreateRequest(CamelModel):
    name: str = Field(..., max_length=255)
    username: str | None = Field(default=None, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=255)
    additional_info: str | None = Field(default=None, max_length=65535)
    avatar: str | None = Field(default=None, max_length=255)
    active: bool = True
    roles: list[int] = []


class UserUpdateRequest(CamelModel):
    """Partial update; only fields present in the body are applied."""

    name: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, min_length=8, max_length=255)
    additional_info: str | None = Field(default=None, max_length=65535)
    avatar: str | None = Field(default=None, max_length=255)
    active: bool | None = None


class UserIdsRequest(CamelModel):
    user_ids: list[int] = Field(..., min_length=1)


class SetRolesRequest(CamelModel):
    roles: list[int]


class ChangePasswordRequest(CamelModel):
    user_id: int
    new_password: str = Field(..., min_length=8)
    new_password_confirmation: str
