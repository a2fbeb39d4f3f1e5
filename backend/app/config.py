"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Trackline"
    app_env: Literal["development", "production", "testing"] = "development"
    debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "trackline"
    postgres_password: str = "trackline_dev"
    postgres_db: str = "trackline"
    database_url: str | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: str | None, info) -> str:
        if v is not None:
            return v
        return (
            f"postgresql+asyncpg://{info.data['postgres_user']}:"
            f"{info.data['postgres_password']}@{info.data['postgres_host']}:"
            f"{info.data['postgres_port']}/{info.data['postgres_db']}"
        )

    # Identity
    # Header carrying the authenticated user id, set by the gateway in front of the API
    auth_user_header: str = "X-User-Id"

    # Track writes
    track_write_max_retries: int = Field(default=3, ge=1)

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    # Frontend
    frontend_url: str = "http://localhost:3000"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
