"""Unit tests for password hashing and access tokens."""

from datetime import timedelta

import jwt
import pytest

from gatehouse.infrastructure.auth import (
    InvalidTokenError,
    JWTService,
    TokenExpiredError,
    hash_password,
    verify_password,
)
from gatehouse.infrastructure.auth.password_hasher import DUMMY_HASH, needs_rehash


class TestPasswordHasher:
    def test_hash_and_verify(self):
        hashed = hash_password("Password123!")

        assert hashed.startswith("$argon2")
        assert verify_password("Password123!", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_unknown_user_never_verifies(self):
        assert verify_password("anything", None) is False

    def test_garbage_hash(self):
        assert verify_password("anything", "not-a-hash") is False

    def test_fresh_hash_needs_no_rehash(self):
        assert needs_rehash(hash_password("Password123!")) is False
        assert DUMMY_HASH.startswith("$argon2")


class TestJWTService:
    @pytest.fixture
    def service(self):
        return JWTService(secret_key="test-secret-key-with-enough-length-0123456789")

    def test_create_and_validate(self, service):
        issued = service.create_access_token(7, "jane@example.com")

        payload = service.validate_access_token(issued.token)

        assert payload["sub"] == "7"
        assert payload["jti"] == issued.token_id
        assert payload["iss"] == "gatehouse"
        assert issued.expires_in == 12 * 60 * 60

    def test_remember_me_lasts_longer(self, service):
        assert service.expiry_for(True) > service.expiry_for(False)

    def test_expired_token(self, service):
        issued = service.create_access_token(7, "jane@example.com", timedelta(seconds=-1))

        with pytest.raises(TokenExpiredError):
            service.decode_token(issued.token)

    def test_wrong_secret(self, service):
        issued = service.create_access_token(7, "jane@example.com")
        other = JWTService(secret_key="another-secret-key-with-enough-length-012345")

        with pytest.raises(InvalidTokenError):
            other.decode_token(issued.token)

    def test_rejects_non_access_token(self, service):
        token = jwt.encode(
            {"iss": "gatehouse", "sub": "7", "jti": "x", "exp": 9999999999, "type": "refresh"},
            service.secret_key,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            service.validate_access_token(token)
