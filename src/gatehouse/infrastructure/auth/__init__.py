"""Authentication primitives: password hashing and bearer tokens."""

from gatehouse.infrastructure.auth.jwt_service import (
    InvalidTokenError,
    IssuedToken,
    JWTError,
    JWTService,
    TokenExpiredError,
    jwt_service,
)
from gatehouse.infrastructure.auth.password_hasher import (
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "InvalidTokenError",
    "IssuedToken",
    "JWTError",
    "JWTService",
    "TokenExpiredError",
    "hash_password",
    "jwt_service",
    "needs_rehash",
    "verify_password",
]
