"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_timeline.timeline.config import TimelineConfig
from agent_timeline.timeline.pricing import PricingTable

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True, "extra": "ignore"}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="Agent Timeline server host address to bind to",
        alias="AGENT_TIMELINE_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="Agent Timeline server port number",
        alias="AGENT_TIMELINE_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="AGENT_TIMELINE_LOG_LEVEL",
    )
    log_format: str = Field(default="detailed", description="Log format (simple, detailed, json)", alias="LOG_FORMAT")
    log_file_dir: str = Field(default="logs", description="Directory of the log file", alias="LOG_FILE_DIR")
    enable_file_logging: bool = Field(default=True, description="Also log to a file", alias="ENABLE_FILE_LOGGING")

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./agent_timeline.db",
        description="Async database URL of the event store (Postgres URLs are normalized to asyncpg)",
        alias="DATABASE_URL",
    )

    # =====================================================================
    # Timeline Configuration
    # =====================================================================
    default_list_limit: int = Field(
        default=100, gt=0, description="Page size of event listings", alias="TIMELINE_DEFAULT_LIST_LIMIT"
    )
    max_list_limit: int = Field(
        default=1000, gt=0, description="Largest page a caller may request", alias="TIMELINE_MAX_LIST_LIMIT"
    )
    list_from_limit: int = Field(
        default=1000, gt=0, description="Default page size of list_from", alias="TIMELINE_LIST_FROM_LIMIT"
    )
    replay_max_events: int = Field(
        default=10_000, gt=0, description="Safety bound on events loaded by one replay", alias="TIMELINE_REPLAY_MAX_EVENTS"
    )
    replay_pairing_window: int = Field(
        default=100,
        gt=0,
        description="Events scanned after a request to find its response",
        alias="TIMELINE_REPLAY_PAIRING_WINDOW",
    )
    replay_timeout_seconds: Optional[float] = Field(
        default=120.0,
        description="Default replay timeout in seconds, unset for no timeout",
        alias="TIMELINE_REPLAY_TIMEOUT_SECONDS",
    )
    stats_cache_enabled: bool = Field(
        default=True,
        description="Cache per-agent stats while the agent's events are unchanged",
        alias="TIMELINE_STATS_CACHE_ENABLED",
    )
    stats_cache_size: int = Field(
        default=1024, gt=0, description="Most agents with cached stats", alias="TIMELINE_STATS_CACHE_SIZE"
    )
    pricing_overrides: Dict[str, Dict[str, float]] = Field(
        default_factory=dict,
        description='Per-model prices, e.g. {"my-model": {"input_per_million": 1, "output_per_million": 2}}',
        alias="TIMELINE_PRICING_OVERRIDES",
    )

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def timeline(self) -> TimelineConfig:
        """Core limits handed to the event store and replay engine."""
        return TimelineConfig(
            default_list_limit=self.default_list_limit,
            max_list_limit=self.max_list_limit,
            list_from_limit=self.list_from_limit,
            replay_max_events=self.replay_max_events,
            replay_pairing_window=self.replay_pairing_window,
            replay_timeout_seconds=self.replay_timeout_seconds,
            stats_cache_enabled=self.stats_cache_enabled,
            stats_cache_size=self.stats_cache_size,
        )

    @property
    def pricing(self) -> PricingTable:
        return PricingTable.with_overrides(self.pricing_overrides)

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
