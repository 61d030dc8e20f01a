"""Identity store interface.

An identity store authenticates credentials, issues bearer tokens and
resolves them back to users. The authorization gate and the HTTP layer only
depend on this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from gatehouse.domain.entities import User


@dataclass
class Credentials:
    """Login credentials.

    Attributes:
        email: Email address or username.
        password: Plain-text password.
        remember_me: Request a long-lived token.
    """

    email: str
    password: str
    remember_me: bool = False


@dataclass
class AuthResult:
    """Outcome of a successful authentication."""

    user: User
    token: str
    expires_in: int


class IdentityStore(ABC):
    """Source of users and bearer tokens."""

    #: Whether issued tokens can be revoked before they expire.
    supports_revocation: bool = False

    @abstractmethod
    async def authenticate(self, credentials: Credentials) -> AuthResult:
        """Verify credentials and issue a token.

        Raises:
            AuthenticationFailed: If the credentials are wrong.
            AccountSuspended: If the account is inactive.
        """

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User:
        """Load a user.

        Raises:
            NotFound: If no such user exists.
        """

    @abstractmethod
    async def resolve_token(self, token: str) -> User | None:
        """Return the token's user, or None if the token is not valid."""

    @abstractmethod
    async def set_active(self, user_id: int, active: bool) -> User:
        """Suspend or re-activate a user."""

    async def revoke_token(self, token: str) -> None:
        """Revoke a single token. No-op for stores without revocation."""

    async def revoke_all_tokens(self, user_id: int) -> int:
        """Revoke every token of a user. Returns the number revoked."""
        return 0
