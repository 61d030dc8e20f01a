"""Permissions API routes.

CRUD over the permission registry. Permission keys are globally unique.
"""

from fastapi import APIRouter, Query, status

from gatehouse.core.logging import get_logger
from gatehouse.domain.exceptions import NotFound, ValidationFailed
from gatehouse.infrastructure.api.dependencies import DbSession, PermissionManager, Resolver
from gatehouse.infrastructure.api.schemas import (
    ApiResponse,
    IdsRequest,
    MessageData,
    PermissionRequest,
    PermissionResponse,
    ok,
)
from gatehouse.infrastructure.persistence.models import PermissionModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import PermissionRepository

logger = get_logger(__name__)

router = APIRouter()

KEY_TAKEN = "The key has already been taken."


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[list[PermissionResponse]],
    responses={403: {"description": "Missing manage permissions ability"}},
)
async def list_permissions(
    current_user: PermissionManager,
    session: DbSession,
    search: str | None = Query(None),
) -> ApiResponse[list[PermissionResponse]]:
    permissions = await PermissionRepository(session).list_all(search)
    return ok([PermissionResponse.model_validate(p) for p in permissions])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[PermissionResponse],
    responses={422: {"description": "Validation error or duplicate key"}},
)
async def create_permission(
    request: PermissionRequest,
    current_user: PermissionManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[PermissionResponse]:
    """Register a permission."""
    repo = PermissionRepository(session)
    key = request.resolved_key
    if await repo.key_exists(key):
        raise ValidationFailed.for_field("key", "unique", KEY_TAKEN)

    data = request.model_dump()
    data["key"] = key
    permission = await repo.create(PermissionModel(**data))
    await session.commit()
    resolver.invalidate()

    logger.info("Permission created", permission_id=permission.id, key=key, created_by=current_user.id)
    return ok(PermissionResponse.model_validate(permission), "Permission created successfully.")


@router.delete(
    "/delete-multiple",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
)
async def delete_permissions(
    request: IdsRequest,
    current_user: PermissionManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    """Delete several permissions with their role bindings."""
    graph = SqlPermissionGraph(session)
    for permission_id in dict.fromkeys(request.ids):
        await graph.delete_permission(permission_id)
    await session.commit()
    resolver.invalidate()

    logger.info("Permissions deleted", permission_ids=request.ids, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))


@router.get(
    "/{permission_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[PermissionResponse],
    responses={404: {"description": "Permission not found"}},
)
async def get_permission(
    permission_id: int, current_user: PermissionManager, session: DbSession
) -> ApiResponse[PermissionResponse]:
    permission = await PermissionRepository(session).get_by_id(permission_id)
    if permission is None:
        raise NotFound("Permission not found.")
    return ok(PermissionResponse.model_validate(permission))


@router.put(
    "/{permission_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[PermissionResponse],
    responses={404: {"description": "Permission not found"}},
)
async def update_permission(
    permission_id: int,
    request: PermissionRequest,
    current_user: PermissionManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[PermissionResponse]:
    repo = PermissionRepository(session)
    permission = await repo.get_by_id(permission_id)
    if permission is None:
        raise NotFound("Permission not found.")

    key = request.resolved_key
    if await repo.key_exists(key, exclude_id=permission_id):
        raise ValidationFailed.for_field("key", "unique", KEY_TAKEN)

    for field, value in request.model_dump().items():
        setattr(permission, field, value)
    permission.key = key
    await session.commit()
    resolver.invalidate()

    logger.info("Permission updated", permission_id=permission_id, updated_by=current_user.id)
    return ok(PermissionResponse.model_validate(permission), "Permission updated successfully.")


@router.delete(
    "/{permission_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
    responses={404: {"description": "Permission not found"}},
)
async def delete_permission(
    permission_id: int,
    current_user: PermissionManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    if not await SqlPermissionGraph(session).delete_permission(permission_id):
        raise NotFound("Permission not found.")
    await session.commit()
    resolver.invalidate()

    logger.info("Permission deleted", permission_id=permission_id, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))
