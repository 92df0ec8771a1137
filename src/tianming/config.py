"""Runtime configuration for the Tianming service."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through ``TIANMING_*`` variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="TIANMING_", extra="ignore"
    )

    content_dir: Path | None = Field(
        default=None, description="Directory holding catalog JSON; bundled content when unset"
    )
    turn_interval_ms: float = Field(
        default=3000.0, description="Base interval between automatic turns", gt=0.0
    )
    game_speed: float = Field(
        default=1.0, description="Initial game speed multiplier", ge=0.5, le=4.0
    )
    message_base_delay_ms: float = Field(
        default=200.0, description="Display delay of the first message in a batch", ge=0.0
    )
    message_stagger_ms: float = Field(
        default=2000.0, description="Display gap between consecutive messages", ge=0.0
    )
    message_buffer_ms: float = Field(
        default=500.0, description="Quiet time after the last message of a batch", ge=0.0
    )
    history_limit: int = Field(
        default=500, description="Turn batches retained for the history endpoint", ge=1
    )
    log_level: str = Field(default="INFO", description="Level applied by the entrypoint")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
