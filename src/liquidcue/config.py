"""Runtime settings loaded with pydantic-settings.

Every value can be set through a ``LIQUIDCUE_``-prefixed environment
variable or a local ``.env`` file. Command-line flags take precedence.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ErrorPolicy = Literal["abort", "skip"]


class Settings(BaseSettings):
    """Application settings.

    Environment variables take precedence over the .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIQUIDCUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Loudness measurement
    ffmpeg_binary: str = "ffmpeg"
    measure_timeout: float | None = Field(
        default=600.0,
        ge=0,
        description="Seconds before an ffmpeg measurement is killed; 0 or None waits forever",
    )

    # Batch processing
    workers: int | None = Field(default=None, ge=1, description="Parallel measurements (default: CPU count)")
    error_policy: ErrorPolicy = "abort"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
