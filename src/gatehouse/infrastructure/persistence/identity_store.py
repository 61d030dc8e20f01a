"""Database-backed identity store.

Passwords are verified with Argon2. Bearer tokens are JWTs whose ``jti``
must match a live row in ``access_tokens``, so deleting the row revokes the
token immediately.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import User
from gatehouse.domain.exceptions import AccountSuspended, AuthenticationFailed, NotFound
from gatehouse.domain.services.identity_store import AuthResult, Credentials, IdentityStore
from gatehouse.infrastructure.auth import JWTError, JWTService, jwt_service, verify_password
from gatehouse.infrastructure.persistence.models import UserModel
from gatehouse.infrastructure.persistence.permission_graph import SqlPermissionGraph
from gatehouse.infrastructure.persistence.repositories import (
    AccessTokenRepository,
    UserRepository,
)

logger = get_logger(__name__)

INVALID_CREDENTIALS = "These credentials do not match our records."


class SqlIdentityStore(IdentityStore):
    """Identity store over the users and access_tokens tables."""

    supports_revocation = True

    def __init__(self, session: AsyncSession, tokens: JWTService | None = None) -> None:
        """Initialize the store.

        Args:
            session: SQLAlchemy async session.
            tokens: JWT service used to sign and verify bearer tokens.
        """
        self.session = session
        self.tokens = tokens or jwt_service
        self.users = UserRepository(session)
        self.access_tokens = AccessTokenRepository(session)
        self.graph = SqlPermissionGraph(session)

    async def to_entity(self, model: UserModel) -> User:
        """Convert a user row to an entity with its roles loaded."""
        return model.to_entity(roles=await self.graph.roles_for_user(model.id))

    async def issue_token(self, user_id: int, email: str, remember_me: bool = False) -> AuthResult:
        issued = self.tokens.create_access_token(
            user_id, email, expires_delta=self.tokens.expiry_for(remember_me)
        )
        await self.access_tokens.create(issued.token_id, user_id, issued.expires_at)
        await self.session.commit()
        user = await self.get_by_id(user_id)
        return AuthResult(user=user, token=issued.token, expires_in=issued.expires_in)

    async def authenticate(self, credentials: Credentials) -> AuthResult:
        model = await self.users.get_by_login(credentials.email)

        # Verification runs even for unknown logins
        password_ok = verify_password(credentials.password, model.password_hash if model else None)
        if model is None or not password_ok:
            logger.info("Login failed: invalid credentials", login=credentials.email)
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        if not model.active:
            logger.info("Login failed: account suspended", user_id=model.id)
            raise AccountSuspended()

        result = await self.issue_token(model.id, model.email, credentials.remember_me)
        logger.info("User logged in", user_id=model.id, remember_me=credentials.remember_me)
        return result

    async def get_by_id(self, user_id: int) -> User:
        model = await self.users.get_by_id(user_id)
        if model is None:
            raise NotFound("User not found.")
        return await self.to_entity(model)

    async def resolve_token(self, token: str) -> User | None:
        try:
            payload = self.tokens.validate_access_token(token)
            user_id = int(payload["sub"])
        except (JWTError, ValueError):
            return None

        record = await self.access_tokens.get_active(payload["jti"])
        if record is None or record.user_id != user_id:
            return None

        model = await self.users.get_by_id(user_id)
        if model is None:
            return None

        await self.access_tokens.touch(record)
        await self.session.commit()
        return await self.to_entity(model)

    async def set_active(self, user_id: int, active: bool) -> User:
        model = await self.users.get_by_id(user_id)
        if model is None:
            raise NotFound("User not found.")

        reactivated = active and not model.active
        model.active = active
        if reactivated:
            # Tokens issued before the suspension stay dead
            await self.access_tokens.delete_all_for_user(user_id)
        await self.session.commit()

        logger.info("User active flag changed", user_id=user_id, active=active)
        return await self.to_entity(model)

    async def revoke_token(self, token: str) -> None:
        try:
            payload = self.tokens.decode_token(token)
        except JWTError:
            return
        if await self.access_tokens.delete(payload["jti"]):
            await self.session.commit()

    async def revoke_all_tokens(self, user_id: int) -> int:
        count = await self.access_tokens.delete_all_for_user(user_id)
        await self.session.commit()
        logger.info("Access tokens revoked", user_id=user_id, count=count)
        return count
