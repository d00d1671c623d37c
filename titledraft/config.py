"""
Configuration settings for titledraft.

Uses Pydantic Settings to load environment variables for the record store
connection, logging, and the timings of the deed table sync protocol.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Record store
    store_backend: str = Field("memory", alias="STORE_BACKEND")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("titledraft", alias="DB_NAME")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Deed table sync timings (milliseconds)
    debounce_ms: int = Field(500, alias="DEBOUNCE_MS")
    editing_release_ms: int = Field(300, alias="EDITING_RELEASE_MS")
    insert_suppression_ms: int = Field(2000, alias="INSERT_SUPPRESSION_MS")
    copy_suppression_ms: int = Field(3000, alias="COPY_SUPPRESSION_MS")
    default_insert_gap_ms: int = Field(1000, alias="DEFAULT_INSERT_GAP_MS")

    # Client-local state (custom columns)
    local_state_dir: Path = Field(Path(".titledraft"), alias="LOCAL_STATE_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@dataclass(frozen=True)
class SyncTimings:
    """
    Delays (in seconds) used by a deed table manager.

    debounce: quiet period before a coalesced write is sent.
    editing_release: how long the "actively editing" mark outlives its write.
    insert_suppression: echo window for positional inserts.
    copy_suppression: echo window for records created by a bulk copy.
    insert_gap_ms: ordering-key gap used when only one neighbour is known.
    """

    debounce: float = 0.5
    editing_release: float = 0.3
    insert_suppression: float = 2.0
    copy_suppression: float = 3.0
    insert_gap_ms: int = 1000

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncTimings":
        return cls(
            debounce=settings.debounce_ms / 1000,
            editing_release=settings.editing_release_ms / 1000,
            insert_suppression=settings.insert_suppression_ms / 1000,
            copy_suppression=settings.copy_suppression_ms / 1000,
            insert_gap_ms=settings.default_insert_gap_ms,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "SyncTimings", "get_settings"]
