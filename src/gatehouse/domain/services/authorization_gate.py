"""Authorization gate.

Runs before every authenticated request and blocks suspended accounts. A
suspended principal gets :class:`AccountSuspended` rather than a generic
authentication failure so clients can tell the two apart.
"""

from gatehouse.core.logging import get_logger
from gatehouse.domain.entities import User
from gatehouse.domain.exceptions import AccountSuspended
from gatehouse.domain.services.identity_store import IdentityStore

logger = get_logger(__name__)


class AuthorizationGate:
    """Checks that the principal behind a bearer token is still active."""

    def __init__(self, identity_store: IdentityStore):
        self.identity_store = identity_store

    async def evaluate(self, token: str | None) -> User | None:
        """Resolve and check the principal for a request.

        Args:
            token: Raw bearer token, if the request carried one.

        Returns:
            The active user, or None when the request has no principal.

        Raises:
            AccountSuspended: If the principal has been deactivated. The
                presented token is revoked first when the store supports it.
        """
        if not token:
            return None

        user = await self.identity_store.resolve_token(token)
        if user is None:
            return None

        if not user.active:
            if self.identity_store.supports_revocation:
                await self.identity_store.revoke_token(token)
            logger.warning("Suspended account blocked", user_id=user.id)
            raise AccountSuspended()

        return user
