# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: provider
credentials, storage backends, tier thresholds, telemetry budgets and logging.
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

    # === AI PROVIDERS ===
    ai_default_provider: Literal["openai", "gemini", "claude", ""] = ""
    ai_provider_order: str = "gemini,openai,claude"

    # Provider API keys
    openai_api_key: str = ""
    google_ai_api_key: str = ""
    anthropic_api_key: str = ""

    # Per-provider vision models (cheap defaults)
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-1.5-flash"
    claude_model: str = "claude-3-haiku-20240307"

    # Call limits
    ai_timeout_s: float = 60.0
    ai_max_retries: int = 1
    ai_retry_delay_s: float = 0.5
    ai_max_tokens: int = 6000
    ai_stage_max_tokens: int = 1500
    ai_temperature: float = 0.2

    # Prompt shaping
    component_limit_min: int = 8
    component_limit_max: int = 20

    # === IMAGES ===
    image_max_dimension: int = 1024
    image_jpeg_quality: int = 80
    image_min_base64_chars: int = 100

    # === STORAGE ===
    database_path: Path = Path("~/.scavy/scavy.db")
    cache_backend: Literal["sqlite", "redis"] = "sqlite"
    cache_redis_url: str = ""
    cache_ttl_days: int | None = None

    # === CATALOG TIER ===
    catalog_enabled: bool = True
    catalog_min_relevance: float = 0.5
    catalog_candidate_limit: int = 200
    catalog_quick_identify: bool = True
    catalog_default_device_age_years: int = 3
    catalog_default_depreciation_rate: float = 0.15

    # === SUBMISSIONS ===
    submission_auto_submit: bool = False
    submission_auto_approve: bool = False

    # === TELEMETRY & BUDGETS ===
    telemetry_enabled: bool = True
    budget_user_daily_usd: float = 1.0
    budget_provider_daily_usd: float = 25.0
    alert_error_rate_threshold: float = 0.2
    alert_min_scans_for_error_rate: int = 10

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("catalog_min_relevance", "alert_error_rate_threshold")
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:  # noqa: N805
        """Thresholds are fractions in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        return v

    @field_validator("ai_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:  # noqa: N805
        """At most one automatic retry on transient failures."""
        if v < 0 or v > 1:
            raise ValueError("ai_max_retries must be 0 or 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.component_limit_min > self.component_limit_max:
            errors.append("COMPONENT_LIMIT_MIN must be <= COMPONENT_LIMIT_MAX")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.cache_ttl_days is not None and self.cache_ttl_days <= 0:
            errors.append("CACHE_TTL_DAYS must be positive when set")

        if not 1 <= self.image_jpeg_quality <= 95:
            errors.append("IMAGE_JPEG_QUALITY must be within 1..95")

        unknown = set(self.ai_provider_order_list) - {"openai", "gemini", "claude"}
        if unknown:
            errors.append(f"AI_PROVIDER_ORDER has unknown providers: {sorted(unknown)}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def ai_provider_order_list(self) -> list[str]:
        """Parse comma-separated provider preference order."""
        return [p.strip() for p in self.ai_provider_order.split(",") if p.strip()]

    def api_key_for(self, provider: str) -> str:
        """Return the configured API key for a provider ('' when unset)."""
        return {
            "openai": self.openai_api_key,
            "gemini": self.google_ai_api_key,
            "claude": self.anthropic_api_key,
        }.get(provider, "")

    def model_for(self, provider: str) -> str:
        """Return the configured vision model for a provider."""
        return {
            "openai": self.openai_model,
            "gemini": self.gemini_model,
            "claude": self.claude_model,
        }[provider]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
