# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for store locations, merge scheduling and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Stores ===
    store_backend: Literal["json", "memory"] = "json"
    batch_dir: Path = Path("./data/aiResponseFinalScoreData")
    snapshot_dir: Path = Path("./data/mergedResults")

    # === Intake ===
    max_batch_items: int = 50

    # === Merge scheduling ===
    merge_on_submit: bool = True
    merge_delay_seconds: float = 1.0

    # === Reporting ===
    top_preview_count: int = 5

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("max_batch_items", "top_preview_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("merge_delay_seconds")
    @classmethod
    def validate_delay(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("merge_delay_seconds must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Batches and snapshots must live in separate directories."""
        if self.store_backend == "json":
            batch = self.batch_dir.expanduser().resolve()
            snapshot = self.snapshot_dir.expanduser().resolve()
            if batch == snapshot:
                raise ConfigurationError(
                    "BATCH_DIR and SNAPSHOT_DIR must be different directories"
                )
        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
