"""Roles API routes.

Provides endpoints for role management and role-permission bindings. Role ids
in the binding endpoints are comma-joined (``/roles/1,2,3/permissions``).
"""

from fastapi import APIRouter, status

from gatehouse.core.logging import get_logger
from gatehouse.domain.exceptions import NotFound, ValidationFailed
from gatehouse.infrastructure.api.dependencies import DbSession, Resolver, RoleManager
from gatehouse.infrastructure.api.schemas import (
    ApiResponse,
    IdsRequest,
    MessageData,
    PermissionIdsRequest,
    PermissionResponse,
    RoleBindingChange,
    RoleListItem,
    RolePermissionsResult,
    RoleRequest,
    RoleResponse,
    ok,
)
from gatehouse.infrastructure.persistence.models import RoleModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import RoleRepository

logger = get_logger(__name__)

router = APIRouter()


def parse_role_ids(ids: str) -> list[int]:
    """Parse a comma-joined id list, ignoring blanks and non-numeric parts.

    Raises:
        ValidationFailed: If no valid id remains.
    """
    role_ids = list(dict.fromkeys(int(part) for part in ids.split(",") if part.strip().isdigit()))
    if not role_ids:
        raise ValidationFailed.for_field("ids", "required", "No valid role id provided.")
    return role_ids


async def load_roles(session: DbSession, ids: str) -> list[RoleModel]:
    roles = await RoleRepository(session).get_by_ids(parse_role_ids(ids))
    if not roles:
        raise NotFound("No role found.")
    return roles


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[list[RoleListItem]],
    responses={403: {"description": "Missing manage roles ability"}},
)
async def list_roles(current_user: RoleManager, session: DbSession) -> ApiResponse[list[RoleListItem]]:
    """List all roles with user and permission counts."""
    rows = await RoleRepository(session).list_with_counts()
    items = [
        RoleListItem(
            **RoleResponse.model_validate(role).model_dump(),
            users_count=users,
            permissions_count=permissions,
        )
        for role, users, permissions in rows
    ]
    logger.debug("Roles listed", count=len(items), requested_by=current_user.id)
    return ok(items)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[RoleResponse],
    responses={422: {"description": "Validation error or duplicate name"}},
)
async def create_role(
    request: RoleRequest, current_user: RoleManager, session: DbSession
) -> ApiResponse[RoleResponse]:
    """Create a new role."""
    repo = RoleRepository(session)
    if await repo.name_exists(request.name):
        raise ValidationFailed.for_field("name", "unique", "The name has already been taken.")

    role = await repo.create(RoleModel(**request.model_dump()))
    await session.commit()

    logger.info("Role created", role_id=role.id, role_name=role.name, created_by=current_user.id)
    return ok(RoleResponse.model_validate(role), "Role created successfully.")


@router.delete(
    "/delete-multiple",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
)
async def delete_roles(
    request: IdsRequest, current_user: RoleManager, session: DbSession, resolver: Resolver
) -> ApiResponse[MessageData]:
    """Delete several roles with all of their bindings."""
    graph = SqlPermissionGraph(session)
    for role_id in dict.fromkeys(request.ids):
        await graph.delete_role(role_id)
    await session.commit()
    resolver.invalidate()

    logger.info("Roles deleted", role_ids=request.ids, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))


@router.get(
    "/{ids}/permissions",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[list[PermissionResponse]],
    responses={404: {"description": "Role not found"}},
)
async def get_role_permissions(
    ids: str, current_user: RoleManager, session: DbSession
) -> ApiResponse[list[PermissionResponse]]:
    """Permissions of one role, or the permissions shared by several roles."""
    roles = await load_roles(session, ids)
    graph = SqlPermissionGraph(session)
    if len(roles) == 1:
        permissions = await graph.permissions_for_role(roles[0].id)
    else:
        permissions = await graph.common_permissions([role.id for role in roles])
    return ok([PermissionResponse.model_validate(p) for p in permissions])


@router.post(
    "/{ids}/permissions",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RolePermissionsResult],
    responses={
        404: {"description": "Role not found"},
        422: {"description": "Unknown permission id"},
    },
)
async def attach_role_permissions(
    ids: str,
    request: PermissionIdsRequest,
    current_user: RoleManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[RolePermissionsResult]:
    """Bind permissions to roles.

    A single role has its permission set replaced (sync). Several roles only
    gain the missing permissions; nothing is detached.
    """
    roles = await load_roles(session, ids)
    graph = SqlPermissionGraph(session)
    single = len(roles) == 1

    changes = []
    for role in roles:
        if single:
            result = await graph.sync_permissions(role.id, request.permission_ids)
            attached, detached = result.attached, result.detached
        else:
            attached = await graph.attach_permissions(role.id, request.permission_ids)
            detached = []
        changes.append((role.id, attached, detached))
    await session.commit()
    resolver.invalidate()

    summary = RolePermissionsResult(
        mode="sync" if single else "attach_only",
        roles=[
            RoleBindingChange(
                role_id=role_id,
                attached=attached,
                detached=detached,
                permission_ids=[p.id for p in await graph.permissions_for_role(role_id)],
            )
            for role_id, attached, detached in changes
        ],
    )
    logger.info(
        "Role permissions attached",
        role_ids=[role.id for role in roles],
        mode=summary.mode,
        changed_by=current_user.id,
    )
    message = (
        "Permissions synchronized for the role."
        if single
        else "Permissions added to the roles (nothing detached)."
    )
    return ok(summary, message)


@router.delete(
    "/{ids}/permissions",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RolePermissionsResult],
    responses={404: {"description": "Role not found"}},
)
async def detach_role_permissions(
    ids: str,
    request: PermissionIdsRequest,
    current_user: RoleManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[RolePermissionsResult]:
    """Remove permissions from every listed role. Unbound ids are ignored."""
    roles = await load_roles(session, ids)
    graph = SqlPermissionGraph(session)

    detached = {role.id: await graph.detach_permissions(role.id, request.permission_ids) for role in roles}
    await session.commit()
    resolver.invalidate()

    summary = RolePermissionsResult(
        mode="detach",
        roles=[
            RoleBindingChange(
                role_id=role_id,
                detached=removed,
                permission_ids=[p.id for p in await graph.permissions_for_role(role_id)],
            )
            for role_id, removed in detached.items()
        ],
    )
    logger.info(
        "Role permissions detached", role_ids=list(detached), changed_by=current_user.id
    )
    return ok(summary, "Permissions detached from the roles.")


@router.get(
    "/{role_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RoleResponse],
    responses={404: {"description": "Role not found"}},
)
async def get_role(
    role_id: int, current_user: RoleManager, session: DbSession
) -> ApiResponse[RoleResponse]:
    role = await RoleRepository(session).get_by_id(role_id)
    if role is None:
        raise NotFound("Role not found.")
    return ok(RoleResponse.model_validate(role))


@router.put(
    "/{role_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RoleResponse],
    responses={404: {"description": "Role not found"}},
)
async def update_role(
    role_id: int,
    request: RoleRequest,
    current_user: RoleManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[RoleResponse]:
    """Update a role's attributes."""
    repo = RoleRepository(session)
    role = await repo.get_by_id(role_id)
    if role is None:
        raise NotFound("Role not found.")
    if await repo.name_exists(request.name, exclude_id=role_id):
        raise ValidationFailed.for_field("name", "unique", "The name has already been taken.")

    for field, value in request.model_dump().items():
        setattr(role, field, value)
    await session.commit()
    resolver.invalidate()

    logger.info("Role updated", role_id=role_id, updated_by=current_user.id)
    return ok(RoleResponse.model_validate(role), "Role updated successfully.")


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
    responses={404: {"description": "Role not found"}},
)
async def delete_role(
    role_id: int, current_user: RoleManager, session: DbSession, resolver: Resolver
) -> ApiResponse[MessageData]:
    """Delete a role and every binding that references it."""
    if not await SqlPermissionGraph(session).delete_role(role_id):
        raise NotFound("Role not found.")
    await session.commit()
    resolver.invalidate()

    logger.info("Role deleted", role_id=role_id, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))
