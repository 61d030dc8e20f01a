"""Default roles, permissions and owner account.

Seeding is idempotent: existing rows (matched by role name or permission
key) are left as they are and only missing bindings are added.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.config import Settings
from gatehouse.core.logging import get_logger
from gatehouse.infrastructure.auth import hash_password
from gatehouse.infrastructure.persistence.models import PermissionModel, RoleModel, UserModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import (
    PermissionRepository,
    RoleRepository,
    UserRepository,
)

logger = get_logger(__name__)

DEFAULT_ROLES = [
    {
        "name": "super-admin",
        "display_name": "Super Administrator",
        "description": "Full access to the system",
        "order": 1,
        "is_owner": True,
    },
    {
        "name": "admin",
        "display_name": "Administrator",
        "description": "System administrator",
        "order": 2,
        "is_owner": False,
    },
    {
        "name": "user",
        "display_name": "User",
        "description": "Standard user",
        "order": 3,
        "is_owner": False,
    },
]

DEFAULT_PERMISSIONS = [
    {
        "key": "view-public-content",
        "action": "view",
        "subject": "public-content",
        "description": "View public content",
        "is_public": True,
    },
    {
        "key": "view-dashboard",
        "action": "view",
        "subject": "dashboard",
        "description": "Access the dashboard",
    },
    {
        "key": "edit-own-profile",
        "action": "edit",
        "subject": "own-profile",
        "description": "Edit one's own profile",
        "table_name": "users",
        "always_allow": True,
    },
    {
        "key": "manage-users",
        "action": "manage",
        "subject": "users",
        "description": "Manage users",
        "table_name": "users",
    },
    {
        "key": "manage-roles",
        "action": "manage",
        "subject": "roles",
        "description": "Manage roles",
        "table_name": "roles",
    },
    {
        "key": "manage-permissions",
        "action": "manage",
        "subject": "permissions",
        "description": "Manage permissions",
        "table_name": "permissions",
    },
]

# Role name -> permission keys; None means every permission.
DEFAULT_BINDINGS: dict[str, list[str] | None] = {
    "super-admin": None,
    "admin": ["view-dashboard", "edit-own-profile", "manage-users", "manage-roles"],
    "user": ["view-public-content", "view-dashboard", "edit-own-profile"],
}


async def seed_defaults(session: AsyncSession) -> None:
    """Seed default roles, permissions and their bindings.

    Args:
        session: SQLAlchemy async session. Committed on success.
    """
    roles = RoleRepository(session)
    permissions = PermissionRepository(session)
    graph = SqlPermissionGraph(session)

    role_ids: dict[str, int] = {}
    for data in DEFAULT_ROLES:
        role = await roles.get_by_name(data["name"])
        if role is None:
            role = await roles.create(RoleModel(**data))
            logger.info("Seeded default role", role_name=data["name"])
        role_ids[role.name] = role.id

    permission_ids: dict[str, int] = {}
    for data in DEFAULT_PERMISSIONS:
        permission = await permissions.get_by_key(data["key"])
        if permission is None:
            permission = await permissions.create(PermissionModel(**data))
            logger.info("Seeded default permission", key=data["key"])
        permission_ids[permission.key] = permission.id

    for role_name, keys in DEFAULT_BINDINGS.items():
        ids = list(permission_ids.values()) if keys is None else [permission_ids[k] for k in keys]
        await graph.attach_permissions(role_ids[role_name], ids)

    await session.commit()


async def create_owner(
    session: AsyncSession,
    email: str,
    password: str,
    name: str = "Owner",
    username: str | None = None,
) -> UserModel:
    """Create a user holding the owner role.

    Args:
        session: SQLAlchemy async session. Committed on success.
        email: Owner email address.
        password: Plain-text password, hashed before storage.
        name: Display name.
        username: Optional login handle.

    Returns:
        The created user model.

    Raises:
        ValueError: If the email is taken or no owner role exists.
    """
    users = UserRepository(session)
    if await users.email_exists(email):
        raise ValueError(f"A user with email {email} already exists")

    owner_role = await RoleRepository(session).get_owner_role()
    if owner_role is None:
        raise ValueError("No owner role exists; run init-db first")

    user = await users.create(
        UserModel(
            name=name,
            email=email,
            username=username,
            password_hash=hash_password(password),
            active=True,
        )
    )
    await SqlPermissionGraph(session).assign_roles(user.id, [owner_role.id])
    await session.commit()

    logger.info("Owner account created", user_id=user.id, email=email, role=owner_role.name)
    return user


async def create_owner_from_settings(session: AsyncSession, settings: Settings) -> None:
    """Create the owner account configured in settings, if it does not exist yet."""
    if not settings.owner_email or not settings.owner_password:
        logger.debug("Owner account not configured, skipping")
        return

    if await UserRepository(session).email_exists(settings.owner_email):
        logger.info("Owner account already exists, skipping", email=settings.owner_email)
        return

    try:
        await create_owner(session, settings.owner_email, settings.owner_password)
    except ValueError as e:
        logger.error("Failed to create owner account", error=str(e), email=settings.owner_email)
