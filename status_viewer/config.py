"""
Runtime configuration helpers for the status viewer and the reference store.

Loads variables from the .env file located in the project root without
overriding values already provided by the environment.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+pysqlite:///./status_store.db", alias="DATABASE_URL")

    app_name: str = Field(default="Status Store", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")

    # Client side: where the playback controller talks to its status store
    status_store_base_url: str = Field(default="http://localhost:8000", alias="STATUS_STORE_BASE_URL")
    status_store_token: str | None = Field(default=None, alias="STATUS_STORE_TOKEN")
    status_store_timeout: float = Field(default=10.0, alias="STATUS_STORE_TIMEOUT")

    # One display frame at 60 Hz
    playback_frame_interval_ms: float = Field(default=16.0, gt=0, alias="PLAYBACK_FRAME_INTERVAL_MS")

    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    cleanup_interval_minutes: int = Field(default=60, ge=1, alias="CLEANUP_INTERVAL_MINUTES")
    disable_cleanup: bool = Field(default=False, alias="DISABLE_CLEANUP")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
