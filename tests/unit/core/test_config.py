"""Unit tests for settings loading."""

import pytest
from pydantic import ValidationError

from gatehouse.core.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.api_prefix == "/api/v1"
    assert settings.permission_cache_ttl_seconds == 300
    assert settings.session_idle_timeout_seconds == 900
    assert settings.session_refresh_interval_seconds == 720
    assert settings.is_development


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("GATEHOUSE_ENVIRONMENT", "testing")
    monkeypatch.setenv("GATEHOUSE_PERMISSION_CACHE_TTL_SECONDS", "60")

    settings = Settings(_env_file=None)

    assert settings.is_testing
    assert settings.permission_cache_ttl_seconds == 60


def test_cors_origins_from_comma_separated_string():
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")

    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_session_intervals_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, session_idle_timeout_seconds=0)


def test_sqlite_rejects_multiple_workers():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, workers=2)
