"""Password reset tokens.

The raw token is handed to the user once; only its SHA-256 digest is kept.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone


def digest(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PasswordResetToken:
    """A pending password reset for one email address.

    Issuing a new token for the same email replaces the previous one.
    """

    email: str
    token_hash: str
    expires_at: datetime
    created_at: datetime = field(default_factory=_now)

    @classmethod
    def generate(
        cls, email: str, expires_in_seconds: int = 3600
    ) -> tuple["PasswordResetToken", str]:
        """Create a token for ``email``.

        Returns:
            The entity to store and the raw token to send.
        """
        raw = secrets.token_urlsafe(32)
        issued = _now().replace(microsecond=0)
        token = cls(
            email=email,
            token_hash=digest(raw),
            expires_at=issued + timedelta(seconds=expires_in_seconds),
            created_at=issued,
        )
        return token, raw

    def is_valid(self) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return _now() < expires_at

    def matches(self, raw_token: str) -> bool:
        """Constant-time check of ``raw_token`` against the stored digest."""
        return secrets.compare_digest(self.token_hash, digest(raw_token))
