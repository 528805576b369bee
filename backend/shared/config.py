"""
Central configuration for all Matchday Consensus services.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class StatisticsBackend(str, Enum):
    REDIS = "redis"
    MEMORY = "memory"


class Settings(BaseSettings):
    """Root settings shared across all services."""

    model_config = SettingsConfigDict(
        env_prefix="MC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"
    instance_id: str = Field(default="", description="Unique pod/container ID included in every log line")

    # ── Redis ────────────────────────────────────────────────
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    redis_max_connections: int = 10

    # ── Statistics ───────────────────────────────────────────
    statistics_backend: StatisticsBackend = StatisticsBackend.MEMORY
    statistics_history_ttl_s: int = 86400 * 400

    # ── Telegram ─────────────────────────────────────────────
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_api_url: str = "https://api.telegram.org"
    telegram_max_message_length: int = 4096
    telegram_chunk_delay_s: float = 0.5

    # ── Providers ────────────────────────────────────────────
    provider_request_timeout_s: float = 10.0
    provider_max_retries: int = 2
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    api_football_key: str = ""
    api_football_host: str = "api-football-v3.p.rapidapi.com"

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = True
    metrics_port: int = 9090

    @property
    def redis_url_str(self) -> str:
        return str(self.redis_url)

    @property
    def redis_url_safe_log(self) -> str:
        """URL with password redacted, for logging only."""
        u = urlparse(str(self.redis_url))
        netloc = (u.hostname or "?") + (f":{u.port}" if u.port else "")
        return f"{u.scheme}://{netloc}{u.path or ''}"

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
