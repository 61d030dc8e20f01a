"""Bearer access tokens.

Tokens are HS256 JWTs whose ``jti`` claim names a row in ``access_tokens``.
The signature proves the token was issued here; the row proves it has not
been revoked since.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from gatehouse.core.config import get_settings

REQUIRED_CLAIMS = ["exp", "sub", "jti"]


class JWTError(Exception):
    pass


class TokenExpiredError(JWTError):
    pass


class InvalidTokenError(JWTError):
    pass


@dataclass
class IssuedToken:
    """An encoded token with the id of its access-token row.

    Attributes:
        token: The encoded JWT handed to the client.
        token_id: The ``jti`` claim.
        expires_at: Expiry instant (UTC).
        expires_in: Lifetime in seconds.
    """

    token: str
    token_id: str
    expires_at: datetime
    expires_in: int


class JWTService:
    """Signs and verifies access tokens.

    Args:
        secret_key: Signing key. Read from settings on each use when omitted,
            so tests can swap settings without rebuilding the service.
    """

    ALGORITHM = "HS256"
    ISSUER = "gatehouse"
    TOKEN_TYPE = "access"

    def __init__(self, secret_key: str | None = None) -> None:
        self._secret_key = secret_key

    @property
    def secret_key(self) -> str:
        return self._secret_key or get_settings().secret_key

    def expiry_for(self, remember_me: bool = False) -> timedelta:
        """Lifetime of a token issued for a normal or a remembered login."""
        settings = get_settings()
        if remember_me:
            return timedelta(days=settings.remember_me_expire_days)
        return timedelta(minutes=settings.access_token_expire_minutes)

    def create_access_token(
        self, user_id: int, email: str, expires_delta: timedelta | None = None
    ) -> IssuedToken:
        """Issue a token for a user.

        The caller stores ``IssuedToken.token_id`` so the token can later be
        resolved and revoked.
        """
        lifetime = expires_delta if expires_delta is not None else self.expiry_for()
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + lifetime
        token_id = str(uuid.uuid4())

        claims = {
            "iss": self.ISSUER,
            "sub": str(user_id),
            "jti": token_id,
            "iat": issued_at,
            "exp": expires_at,
            "email": email,
            "type": self.TOKEN_TYPE,
        }
        encoded = jwt.encode(claims, self.secret_key, algorithm=self.ALGORITHM)
        return IssuedToken(encoded, token_id, expires_at, int(lifetime.total_seconds()))

    def decode_token(self, token: str) -> dict[str, Any]:
        """Verify signature, issuer and expiry and return the claims.

        Raises:
            TokenExpiredError: The token is past its ``exp``.
            InvalidTokenError: Any other verification failure.
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.ALGORITHM],
                issuer=self.ISSUER,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """Like :meth:`decode_token`, also rejecting tokens of another type."""
        claims = self.decode_token(token)
        if claims.get("type") != self.TOKEN_TYPE:
            raise InvalidTokenError("Not an access token")
        return claims


jwt_service = JWTService()
