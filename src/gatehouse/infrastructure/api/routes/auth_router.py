"""Authentication API routes.

Provides endpoints for login, logout, the current principal and password
reset.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from gatehouse.core.config import get_settings
from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import User
from gatehouse.domain.exceptions import ValidationFailed
from gatehouse.domain.services import AbilityResolver, Credentials
from gatehouse.domain.services.password_reset_service import PasswordResetService
from gatehouse.infrastructure.api.dependencies import (
    CurrentUser,
    DbSession,
    Resolver,
    get_identity_store,
    get_reset_notifier,
)
from gatehouse.infrastructure.api.schemas import (
    AbilityRule,
    ApiResponse,
    CurrentUserResponse,
    ForgottenPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageData,
    PermissionResponse,
    ResetPasswordRequest,
    RoleResponse,
    UserResponse,
    ok,
)
from gatehouse.infrastructure.persistence.identity_store import SqlIdentityStore
from gatehouse.infrastructure.services import PasswordResetNotifier

logger = get_logger(__name__)

router = APIRouter()

IdentityStoreDep = Annotated[SqlIdentityStore, Depends(get_identity_store)]
NotifierDep = Annotated[PasswordResetNotifier, Depends(get_reset_notifier)]

RESET_LINK_SENT = (
    "If your email exists in our system, you will receive a password reset link shortly."
)


async def principal_snapshot(user: User, resolver: AbilityResolver) -> CurrentUserResponse:
    """Serialize a user with roles, permissions and ability keys."""
    permissions = await resolver.permissions_for(user)
    abilities = await resolver.abilities_for(user)
    return CurrentUserResponse(
        user=UserResponse.from_user(user, get_settings().storage_url),
        roles=[RoleResponse.model_validate(role) for role in user.roles],
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
        abilities=[ability.key for ability in abilities],
    )


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[LoginResponse],
    responses={
        401: {"description": "Invalid credentials"},
        422: {"description": "Validation error"},
        423: {"description": "Account suspended"},
    },
)
async def login(
    request: LoginRequest,
    store: IdentityStoreDep,
    resolver: Resolver,
) -> ApiResponse[LoginResponse]:
    """Authenticate with email (or username) and password.

    Returns a bearer token together with the user's roles, permissions and
    ability rules.
    """
    result = await store.authenticate(
        Credentials(
            email=request.email, password=request.password, remember_me=request.remember_me
        )
    )
    snapshot = await principal_snapshot(result.user, resolver)

    return ok(
        LoginResponse(
            access_token=result.token,
            token_type="Bearer",
            expires_in=result.expires_in,
            user=snapshot.user,
            roles=snapshot.roles,
            permissions=snapshot.permissions,
            ability_rules=[
                AbilityRule(id=p.id, action=p.action, subject=p.subject)
                for p in snapshot.permissions
            ],
        ),
        "Login successful",
    )


@router.get(
    "/logout",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
    responses={401: {"description": "Not authenticated"}, 423: {"description": "Suspended"}},
)
async def logout(
    current_user: CurrentUser,
    store: IdentityStoreDep,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    """Revoke every token of the current user."""
    await store.revoke_all_tokens(current_user.id)
    resolver.invalidate(current_user.id)
    logger.info("User logged out", user_id=current_user.id)
    return ok(MessageData(message="Successfully logged out"))


@router.get(
    "/user",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[CurrentUserResponse],
    responses={401: {"description": "Not authenticated"}, 423: {"description": "Suspended"}},
)
async def current_user(current_user: CurrentUser, resolver: Resolver) -> ApiResponse[CurrentUserResponse]:
    """Return the current principal with roles and abilities."""
    return ok(await principal_snapshot(current_user, resolver))


@router.post(
    "/forgotten-password",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
)
async def forgotten_password(
    request: ForgottenPasswordRequest,
    session: DbSession,
    notifier: NotifierDep,
) -> ApiResponse[MessageData]:
    """Issue a password reset token.

    The response is identical whether or not the address belongs to an
    account.
    """
    service = PasswordResetService(
        session, notifier, get_settings().password_reset_expire_minutes * 60
    )
    await service.request_reset(request.email)
    return ok(MessageData(message=RESET_LINK_SENT))


@router.patch(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MessageData],
    responses={422: {"description": "Invalid token or validation error"}},
)
async def reset_password(
    request: ResetPasswordRequest,
    session: DbSession,
    notifier: NotifierDep,
    resolver: Resolver,
) -> ApiResponse[MessageData]:
    """Reset a password with a token issued by ``/forgotten-password``.

    Every access token of the user is revoked.
    """
    if request.new_password != request.new_password_confirmation:
        raise ValidationFailed.for_field(
            "newPasswordConfirmation", "same", "The password confirmation does not match."
        )

    service = PasswordResetService(session, notifier)
    user = await service.reset_password(request.email, request.token, request.new_password)
    resolver.invalidate(user.id)
    return ok(MessageData(message="Password has been reset successfully."))
