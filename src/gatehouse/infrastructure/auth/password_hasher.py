"""Password hashing with Argon2id.

``DUMMY_HASH`` lets login spend the same verification time whether or not
the account exists.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()

DUMMY_HASH = _hasher.hash("gatehouse-dummy-password")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash.

    Returns:
        The encoded hash string.
    """
    return _hasher.hash(password)


def verify_password(password: str, hashed: str | None) -> bool:
    """Verify a password against a stored hash.

    Args:
        password: The plaintext password to verify.
        hashed: The stored hash. None verifies against ``DUMMY_HASH`` and
            always fails.

    Returns:
        True if the password matches, False otherwise (including malformed
        hashes).
    """
    try:
        _hasher.verify(hashed or DUMMY_HASH, password)
    except (VerificationError, InvalidHashError):
        return False
    return hashed is not None


def needs_rehash(hashed: str) -> bool:
    """Whether a hash was produced with outdated parameters."""
    return _hasher.check_needs_rehash(hashed)
