"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage - which backend implements the bookmark repository
    storage_backend: Literal["memory", "sql", "redis"] = Field(
        default="memory", validation_alias="STORAGE_BACKEND",
    )

    # Relational backend
    database_url: str = Field(
        default="sqlite+aiosqlite:///./athena.db", validation_alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Document backend
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_key_prefix: str = Field(default="athena", validation_alias="REDIS_KEY_PREFIX")

    # Auth - HS256 bearer tokens issued by the auth service
    jwt_secret: str = Field(default="change-me", validation_alias="JWT_SECRET")
    jwt_issuer: str = Field(default="athena", validation_alias="JWT_ISSUER")

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")
    dev_user_id: str = Field(default="dev-user", validation_alias="DEV_USER_ID")

    # Content fetching
    fetch_timeout: float = Field(default=10.0, validation_alias="FETCH_TIMEOUT")
    summary_max_length: int = Field(default=1000, validation_alias="SUMMARY_MAX_LENGTH")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled against a remote store.

        DEV_MODE completely bypasses authentication, so it is only allowed when the
        configured backend lives on the local machine (or in process memory).
        """
        if not self.dev_mode:
            return self

        if self.storage_backend == "memory":
            return self

        url = self.database_url if self.storage_backend == "sql" else self.redis_url
        if url.startswith("sqlite"):
            return self

        try:
            hostname = urlparse(url).hostname or ""
        except ValueError:
            # Unparseable URL blocks DEV_MODE (fail-safe)
            hostname = ""

        if hostname.lower() not in LOCAL_HOSTS:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local {self.storage_backend} backend. "
                f"Host '{hostname}' appears to be a remote store. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
