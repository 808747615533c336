# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache, concurrency, retry and logging settings.
Per-call behaviour (overwrite, explicit path, dry run) is not configured here;
it travels in core.models.InstallOptions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from compforge.core.errors import CompforgeError


class ConfigurationError(CompforgeError):
    """Raised when configuration is internally inconsistent."""

    code = "CONFIG_ERROR"


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Registry ===
    registry_file: Path | None = None

    # === Cache ===
    cache_enabled: bool = True
    cache_root: Path = Path("~/.compforge/cache")
    cache_default_ttl_s: float = 3600.0
    cache_max_entries: int = 1000
    cache_component_ttl_s: float = 7 * 24 * 3600.0
    cache_search_ttl_s: float = 600.0

    # === Installation ===
    install_concurrency: int = 3
    install_task_timeout_s: float = 60.0

    # === Fetch retry ===
    fetch_timeout_s: float = 10.0
    fetch_retries: int = 3
    fetch_retry_delay_s: float = 1.0
    fetch_backoff_factor: float = 2.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("install_concurrency", "cache_max_entries")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("fetch_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("fetch_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field rules: durations must be positive and coherent."""
        errors: list[str] = []

        for name in (
            "cache_default_ttl_s",
            "cache_component_ttl_s",
            "cache_search_ttl_s",
            "install_task_timeout_s",
            "fetch_timeout_s",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be > 0")

        if self.fetch_retry_delay_s < 0:
            errors.append("FETCH_RETRY_DELAY_S must be >= 0")
        if self.fetch_backoff_factor < 1:
            errors.append("FETCH_BACKOFF_FACTOR must be >= 1")

        # A component fetch must be able to exhaust its retries before the
        # task deadline abandons it.
        if not errors and self.install_task_timeout_s < self.fetch_budget_s:
            errors.append(
                f"INSTALL_TASK_TIMEOUT_S must be >= {self.fetch_budget_s:g} "
                "(FETCH_TIMEOUT_S per attempt plus retry backoff)"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def fetch_budget_s(self) -> float:
        """Worst-case duration of one fetch, every retry and backoff included."""
        attempts = self.fetch_retries + 1
        backoff = sum(
            self.fetch_retry_delay_s * self.fetch_backoff_factor**i
            for i in range(self.fetch_retries)
        )
        return self.fetch_timeout_s * attempts + backoff

    @property
    def cache_root_path(self) -> Path:
        """Cache root with ~ expanded."""
        return self.cache_root.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-command config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
