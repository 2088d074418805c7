"""
Configuration and settings for the sync server.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    api_prefix: str = Field(default="", validation_alias="SYNC_API_PREFIX")

    # Snapshot storage
    data_dir: str = Field(default="data", validation_alias="SYNC_DATA_DIR")
    data_file_name: str = Field(
        default="data.json", validation_alias="SYNC_DATA_FILE"
    )
    lock_timeout_seconds: float = Field(
        default=10.0, validation_alias="SYNC_LOCK_TIMEOUT_SECONDS"
    )

    # Transport policy
    sync_password: str = Field(default="", validation_alias="SYNC_PASSWORD")
    # Calendar state embeds images, so payloads run large.
    max_payload_bytes: int = Field(
        default=10 * 1024 * 1024, validation_alias="SYNC_MAX_PAYLOAD_BYTES"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], validation_alias="SYNC_CORS_ORIGINS"
    )

    # Development toggles
    use_in_memory_store: bool = Field(
        default=False, validation_alias="SYNC_USE_IN_MEMORY_STORE"
    )

    # Server process
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
