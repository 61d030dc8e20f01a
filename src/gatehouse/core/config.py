"""Gatehouse settings.

Values come from ``GATEHOUSE_*`` environment variables and an optional
``.env`` file, are validated once and then cached for the life of the
process by :func:`get_settings`.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Grouped by concern: service identity, HTTP server, database, tokens,
    authorization, client session timers and logging.
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEHOUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "Gatehouse"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    cors_origins: list[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default=["*"])
    cors_allow_headers: list[str] = Field(default=["*"])

    # Database
    database_url: str = "sqlite+aiosqlite:///./gh_data/gatehouse.db"
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600

    # Tokens
    secret_key: str = Field(
        default="change-me-in-production-use-openssl-rand-hex-32",
        description="HMAC key for signing access tokens",
    )
    access_token_expire_minutes: int = 12 * 60
    remember_me_expire_days: int = 30
    password_reset_expire_minutes: int = 60

    # Authorization
    permission_cache_ttl_seconds: int = 300
    login_url: str = "/login"
    storage_url: str = "/storage"
    owner_email: str | None = Field(
        default=None, description="Owner account created at startup, with owner_password"
    )
    owner_password: str | None = None

    # Client session timers
    session_idle_timeout_seconds: int = 15 * 60
    session_refresh_interval_seconds: int = 12 * 60

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: str | list[str]) -> list[str]:
        """Accept ``GATEHOUSE_CORS_ORIGINS=a,b`` as well as a JSON list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator(
        "session_idle_timeout_seconds",
        "session_refresh_interval_seconds",
        "permission_cache_ttl_seconds",
    )
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @model_validator(mode="after")
    def single_worker_for_sqlite(self) -> "Settings":
        """SQLite cannot be shared by several worker processes."""
        if self.workers > 1 and self.database_url.startswith("sqlite"):
            raise ValueError(
                f"SQLite requires workers=1 (got {self.workers}); use PostgreSQL to scale out"
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings()
