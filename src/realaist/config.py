"""Configuration system for Realaist.

Uses pydantic-settings to load configuration from environment variables
and .env files with sensible defaults for the listing cache and the
hosted property store.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .storage.constants import CACHE_DURATIONS, CACHE_VERSION


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with REALAIST_ (e.g., REALAIST_CACHE_TTL).
    Durations are in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="REALAIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Hosted store (Supabase / PostgREST)
    supabase_url: str | None = Field(
        default=None,
        description="Base URL of the Supabase project",
    )
    supabase_anon_key: str | None = Field(
        default=None,
        description="Anonymous API key sent with every request",
    )
    supabase_access_token: str | None = Field(
        default=None,
        description="User access token required for write operations",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout in seconds for store requests",
    )

    # Read-through cache
    cache_ttl: float = Field(
        default=CACHE_DURATIONS["API"],
        ge=0,
        description="Seconds an entry is served fresh",
    )
    cache_max_age: float = Field(
        default=CACHE_DURATIONS["DYNAMIC"],
        ge=0,
        description="Seconds after which an entry is unusable even as stale data",
    )
    cache_version: str = Field(
        default=CACHE_VERSION,
        description="Schema tag stored with every entry",
    )
    cache_cleanup_interval: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between expiry sweeps",
    )
    cache_coalesce_misses: bool = Field(
        default=False,
        description="Share one in-flight fetch between concurrent misses",
    )

    # Per-resource TTLs
    properties_ttl: float = Field(
        default=CACHE_DURATIONS["API"],
        ge=0,
        description="TTL for listing queries",
    )
    property_detail_ttl: float = Field(
        default=CACHE_DURATIONS["PROPERTIES"],
        ge=0,
        description="TTL for single property lookups",
    )
    stale_refresh_threshold: float = Field(
        default=120.0,
        ge=0,
        description="Inactivity after which a returning client triggers a refresh",
    )

    # Server
    log_level: str = Field(default="INFO", description="Root log level")
    frontend_url: str | None = Field(
        default=None,
        description="Production frontend origin allowed by CORS",
    )


# Singleton instance for easy import
config = Settings()
