"""
Configuration for the Heart Disease Detector.

Environment-based settings using Pydantic Settings. Every field can be
overridden with an ``HEART_``-prefixed environment variable (or a ``.env``
file), e.g. ``HEART_ANALYSIS_DELAY_SECONDS=0``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent
MODEL_DIR = PACKAGE_DIR / "model"
DEFAULT_WEIGHTS_PATH = MODEL_DIR / "weights.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HEART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Heart Disease Detector API"
    app_version: str = "1.0"

    # Model bundle
    weights_path: Optional[Path] = Field(
        default=None, description="JSON weights artifact; bundled default when unset"
    )

    # Analysis
    analysis_delay_seconds: float = Field(
        default=2.0, ge=0.0, description="Artificial delay before an analysis completes"
    )
    strict_validation: bool = Field(
        default=False, description="Reject malformed input instead of coercing it to 0"
    )

    log_level: str = "INFO"

    @property
    def resolved_weights_path(self) -> Path:
        return self.weights_path or DEFAULT_WEIGHTS_PATH


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
