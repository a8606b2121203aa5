"""Application configuration loaded via Pydantic settings."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    KEYGATE_LOG_LEVEL: str = Field(default="info")
    KEYGATE_LOG_DIR: Path | None = Field(default=None)
    DATA_DIR: Path = Field(default=Path("/data"))
    KEYS_DB_FILENAME: str = Field(default="keys.json")

    ADMIN_API_TOKEN: str | None = Field(default=None)
    HEALTHCHECK_API_TOKEN: str | None = Field(default=None)
    ENABLE_ADMIN_AUTH: bool = Field(default=True)
    LOG_PSEUDONYM_SECRET: str = Field(...)

    # Key issuance defaults
    KEY_PREFIX: str = Field(default="RBX-")
    KEY_SUFFIX_LENGTH: int = Field(default=8, ge=8)
    KEY_TTL_SECONDS: int = Field(default=3 * 24 * 60 * 60, ge=1)
    KEY_USAGE_QUOTA: int | None = Field(default=None, ge=1)
    RESET_COOLDOWN_SECONDS: int = Field(default=12 * 60 * 60, ge=0)

    # Store behaviour
    STORE_LOCK_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    STORE_WRITE_RETRIES: int = Field(default=2, ge=0)


settings = Settings()  # type: ignore[call-arg]
config = settings

os.environ.setdefault("LOG_PSEUDONYM_SECRET", settings.LOG_PSEUDONYM_SECRET)


__all__ = ["Settings", "settings", "config"]
