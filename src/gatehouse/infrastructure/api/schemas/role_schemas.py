"""Role and permission API schemas for request/response validation."""

from pydantic import Field, field_validator

from gatehouse.infrastructure.api.schemas.common import CamelModel


class RoleRequest(CamelModel):
    """Request schema for creating or updating a role.

    Attributes:
        name: Unique role name (e.g., 'editor').
        display_name: Human readable name.
        description: Optional description of the role's purpose.
        order: Seniority rank, lower is more senior.
        is_owner: Whether holders are granted every permission.
    """

    name: str = Field(..., max_length=50)
    display_name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=255)
    order: int = 0
    is_owner: bool = False

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Validate that name is not empty."""
        if not v or not v.strip():
            raise ValueError("Role name cannot be empty")
        return v.strip()


class RoleResponse(CamelModel):
    id: int
    name: str
    display_name: str | None = None
    description: str | None = None
    order: int = 0
    is_owner: bool = False


class RoleListItem(RoleResponse):
    """Role with binding counts."""

    users_count: int = 0
    permissions_count: int = 0


class PermissionRequest(CamelModel):
    """Request schema for creating or updating a permission.

    The key defaults to ``"{action}-{subject}"`` when omitted.
    """

    key: str | None = Field(default=None, max_length=100)
    action: str = Field(..., max_length=50)
    subject: str = Field(..., max_length=100)
    description: str | None = Field(default=None, max_length=255)
    table_name: str | None = Field(default=None, max_length=100)
    always_allow: bool = False
    is_public: bool = False

    @property
    def resolved_key(self) -> str:
        return self.key or f"{self.action}-{self.subject}"


class PermissionResponse(CamelModel):
    id: int
    key: str
    action: str
    subject: str
    description: str | None = None
    table_name: str | None = None
    always_allow: bool = False
    is_public: bool = False


class PermissionIdsRequest(CamelModel):
    """Body of the role-permission attach and detach endpoints."""

    permission_ids: list[int]


class RoleBindingChange(CamelModel):
    """Changes applied to a single role."""

    role_id: int
    attached: list[int] = []
    detached: list[int] = []
    permission_ids: list[int] = []


class RolePermissionsResult(CamelModel):
    """Result of an attach or detach request.

    Attributes:
        mode: ``sync`` for a single role, ``attach_only`` for several roles on
            attach, ``detach`` on detach.
        roles: Per-role change summary including the updated binding set.
    """

    mode: str
    roles: list[RoleBindingChange]
