"""Users API routes.

User administration requires the ``manage users`` ability. Profile updates
are also open to the user themself through the ``edit own-profile``
ability.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from gatehouse.core.config import get_settings
from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import User
from gatehouse.domain.exceptions import AccessDenied, NotFound, ValidationFailed
from gatehouse.infrastructure.api.dependencies import (
    CurrentUser,
    DbSession,
    Resolver,
    UserManager,
    get_identity_store,
)
from gatehouse.infrastructure.api.schemas import (
    ApiResponse,
    ChangePasswordRequest,
    IdsRequest,
    MessageData,
    SetRolesRequest,
    UserCreateRequest,
    UserIdsRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
    ok,
)
from gatehouse.infrastructure.auth import hash_password
from gatehouse.infrastructure.persistence.identity_store import SqlIdentityStore
from gatehouse.infrastructure.persistence.models import UserModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import UserRepository

logger = get_logger(__name__)

router = APIRouter()

IdentityStoreDep = Annotated[SqlIdentityStore, Depends(get_identity_store)]

# Columns that may be omitted from an update but never cleared.
REQUIRED_FIELDS = ("name", "email")


def serialize(user: User) -> UserResponse:
    return UserResponse.from_user(user, get_settings().storage_url)


async def ensure_unique(
    repo: UserRepository, email: str | None, username: str | None, exclude_id: int | None = None
) -> None:
    """Raise a field error when the email or username is already taken."""
    if email and await repo.email_exists(email, exclude_id):
        raise ValidationFailed.for_field("email", "unique", "The email has already been taken.")
    if username and await repo.username_exists(username, exclude_id):
        raise ValidationFailed.for_field(
            "username", "unique", "The username has already been taken."
        )


async def apply_update(
    session: DbSession, store: SqlIdentityStore, user_id: int, request: UserUpdateRequest
) -> User:
    """Apply the fields present in ``request`` to a user."""
    repo = UserRepository(session)
    model = await repo.get_by_id(user_id)
    if model is None:
        raise NotFound("User not found.")

    changes = request.model_dump(exclude_unset=True)
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationFailed.for_field(field, "required", f"The {field} field is required.")
    await ensure_unique(repo, changes.get("email"), changes.get("username"), exclude_id=user_id)

    password = changes.pop("password", None)
    if password:
        model.password_hash = hash_password(password)
    active = changes.pop("active", None)
    for field, value in changes.items():
        setattr(model, field, value)
    await session.commit()

    if active is not None and active != model.active:
        return await store.set_active(user_id, active)
    return await store.get_by_id(user_id)


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserListResponse],
    responses={403: {"description": "Missing manage users ability"}},
)
async def list_users(
    current_user: UserManager,
    session: DbSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100, alias="pageSize"),
    search: str | None = Query(None),
) -> ApiResponse[UserListResponse]:
    """List users with their roles, paginated."""
    models, total = await UserRepository(session).list_paginated(
        skip=(page - 1) * page_size, limit=page_size, search=search
    )
    roles = await SqlPermissionGraph(session).roles_for_users([m.id for m in models])
    items = [serialize(m.to_entity(roles=roles.get(m.id, []))) for m in models]
    return ok(UserListResponse(items=items, total=total, page=page, page_size=page_size))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserResponse],
    responses={422: {"description": "Validation error"}},
)
async def create_user(
    request: UserCreateRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
) -> ApiResponse[UserResponse]:
    """Create a user and assign the requested roles."""
    repo = UserRepository(session)
    await ensure_unique(repo, request.email, request.username)

    model = await repo.create(
        UserModel(
            name=request.name,
            username=request.username,
            email=str(request.email),
            password_hash=hash_password(request.password),
            additional_info=request.additional_info,
            avatar=request.avatar,
            active=request.active,
        )
    )
    if request.roles:
        await SqlPermissionGraph(session).assign_roles(model.id, request.roles)
    await session.commit()

    logger.info("User created", user_id=model.id, created_by=current_user.id)
    return ok(serialize(await store.get_by_id(model.id)), "User created successfully.")


@router.delete(
    "/delete-multiple",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
)
async def delete_users(
    request: IdsRequest,
    current_user: UserManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    """Delete several users along with their role bindings and tokens."""
    graph = SqlPermissionGraph(session)
    deleted = 0
    for user_id in dict.fromkeys(request.ids):
        if await graph.delete_user(user_id):
            resolver.invalidate(user_id)
            deleted += 1
    await session.commit()

    logger.info("Users deleted", count=deleted, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))


async def set_active_many(
    store: SqlIdentityStore, session: DbSession, user_ids: list[int], active: bool
) -> list[UserResponse]:
    repo = UserRepository(session)
    found = {m.id for m in await repo.get_by_ids(user_ids)}
    missing = [i for i in user_ids if i not in found]
    if missing:
        raise ValidationFailed.for_field("userIds", "exists", "The selected user ids is invalid.")
    return [serialize(await store.set_active(user_id, active)) for user_id in dict.fromkeys(user_ids)]


@router.patch(
    "/suspend-multiple",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[list[UserResponse]],
)
async def suspend_users(
    request: UserIdsRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
) -> ApiResponse[list[UserResponse]]:
    """Suspend several users. Their tokens are revoked on next use."""
    users = await set_active_many(store, session, request.user_ids, False)
    return ok(users, "Users updated successfully.")


@router.patch(
    "/active-multiple",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[list[UserResponse]],
)
async def reactivate_users(
    request: UserIdsRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
) -> ApiResponse[list[UserResponse]]:
    """Re-activate several users, revoking tokens issued before suspension."""
    users = await set_active_many(store, session, request.user_ids, True)
    return ok(users, "Users reactivated successfully.")


@router.put(
    "/change-password",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
)
async def change_password(
    request: ChangePasswordRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
) -> ApiResponse[UserResponse]:
    """Set another user's password."""
    if request.new_password != request.new_password_confirmation:
        raise ValidationFailed.for_field(
            "newPasswordConfirmation", "same", "The password confirmation does not match."
        )

    model = await UserRepository(session).get_by_id(request.user_id)
    if model is None:
        raise ValidationFailed.for_field("userId", "exists", "The selected user id is invalid.")

    model.password_hash = hash_password(request.new_password)
    await session.commit()

    logger.info("Password changed", user_id=model.id, changed_by=current_user.id)
    return ok(serialize(await store.get_by_id(model.id)), "Password changed successfully.")


@router.post(
    "/update-profile/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
    responses={403: {"description": "Not allowed to edit this profile"}},
)
async def update_profile(
    user_id: int,
    request: UserUpdateRequest,
    current_user: CurrentUser,
    session: DbSession,
    store: IdentityStoreDep,
    resolver: Resolver,
) -> ApiResponse[UserResponse]:
    """Update a profile.

    Users with ``edit own-profile`` may edit themselves; anyone else needs
    ``manage users``. Self-service edits cannot change the active flag.
    """
    is_self = user_id == current_user.id
    if is_self and await resolver.can(current_user, "edit", "own-profile"):
        request.active = None
    elif not await resolver.can(current_user, "manage", "users"):
        raise AccessDenied(action="manage", subject="users")

    user = await apply_update(session, store, user_id, request)
    return ok(serialize(user), "Profile updated successfully.")


@router.get(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: int, current_user: UserManager, store: IdentityStoreDep
) -> ApiResponse[UserResponse]:
    return ok(serialize(await store.get_by_id(user_id)))


@router.put(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
    responses={404: {"description": "User not found"}},
)
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
) -> ApiResponse[UserResponse]:
    user = await apply_update(session, store, user_id, request)
    logger.info("User updated", user_id=user_id, updated_by=current_user.id)
    return ok(serialize(user), "User updated successfully.")


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
    responses={404: {"description": "User not found"}},
)
async def delete_user(
    user_id: int,
    current_user: UserManager,
    session: DbSession,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    """Delete a user, its role bindings and its tokens."""
    if not await SqlPermissionGraph(session).delete_user(user_id):
        raise NotFound("User not found.")
    await session.commit()
    resolver.invalidate(user_id)

    logger.info("User deleted", user_id=user_id, deleted_by=current_user.id)
    return ok(MessageData(message="Deleted successfully"))


@router.post(
    "/{user_id}/suspend-active",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
    responses={404: {"description": "User not found"}},
)
async def toggle_active(
    user_id: int, current_user: UserManager, store: IdentityStoreDep
) -> ApiResponse[UserResponse]:
    """Toggle a user between active and suspended."""
    user = await store.get_by_id(user_id)
    user = await store.set_active(user_id, not user.active)
    state = "activated" if user.active else "suspended"
    return ok(serialize(user), f"User has been {state} successfully.")


@router.post(
    "/{user_id}/roles",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UserResponse],
    responses={404: {"description": "User not found"}},
)
async def set_user_roles(
    user_id: int,
    request: SetRolesRequest,
    current_user: UserManager,
    session: DbSession,
    store: IdentityStoreDep,
    resolver: Resolver,
) -> ApiResponse[UserResponse]:
    """Replace the user's roles with the given set."""
    if await UserRepository(session).get_by_id(user_id) is None:
        raise NotFound("User not found.")

    changes = await SqlPermissionGraph(session).sync_roles(user_id, request.roles)
    await session.commit()
    resolver.invalidate(user_id)

    logger.info(
        "User roles synced",
        user_id=user_id,
        attached=changes.attached,
        detached=changes.detached,
        changed_by=current_user.id,
    )
    return ok(serialize(await store.get_by_id(user_id)), "Roles updated successfully.")
