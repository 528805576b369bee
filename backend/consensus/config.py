"""
Digest service configuration.
Uses MC_DIGEST_ prefix; general settings (Redis, Telegram, HTTP) live in shared.config.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.models.enums import ReportMode

DEFAULT_SOURCES = ["forebet", "betbrain", "escored"]


class DigestSettings(BaseSettings):
    """Digest-specific settings; use get_settings() for Redis/Telegram/HTTP."""

    model_config = SettingsConfigDict(
        env_prefix="MC_DIGEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Ranking and formatting
    min_confidence: float = Field(default=65.0, ge=0, le=100, description="Inclusive average-confidence threshold")
    max_records: int = Field(default=10, ge=1, description="Cap on matches rendered in a full report")
    report_mode: ReportMode = Field(default=ReportMode.FULL, description="full or top_n")
    top_n: int = Field(default=5, ge=1, description="Matches rendered in a top_n report")

    # Sources
    sources: list[str] = Field(default_factory=lambda: list(DEFAULT_SOURCES), description="Enabled source adapters")

    # Schedule
    send_times: list[str] = Field(default_factory=lambda: ["07:00"], description="Local HH:MM times to publish")
    timezone: str = Field(default="Europe/Lisbon", description="IANA timezone for send_times")
    run_on_startup: bool = Field(default=False, description="Publish one digest immediately after startup")
    send_startup_message: bool = Field(default=True, description="Send a hello message when the bot starts")
    run_lock_ttl_s: int = Field(default=3600, description="TTL of the per-slot Redis run lock")

    # Circuit breaker (per source)
    circuit_failure_threshold: int = Field(default=3, description="Consecutive failures before skipping a source")
    circuit_recovery_s: float = Field(default=3600.0, description="Seconds before a skipped source is probed again")


def get_digest_settings() -> DigestSettings:
    """Load digest settings from the environment."""
    return DigestSettings()
