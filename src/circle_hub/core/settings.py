"""Application settings and configuration.

This module defines all configuration options for the Circle Hub service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Circle Hub", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    admin_token_expire_minutes: int = Field(
        default=60 * 12,
        alias="ADMIN_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./circle_hub.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Remote submission store
    remote_backend: Literal["sql", "supabase"] = Field(default="sql", alias="REMOTE_BACKEND")
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_key: str | None = Field(default=None, alias="SUPABASE_KEY")
    supabase_submissions_table: str = Field(
        default="community_subs",
        alias="SUPABASE_SUBMISSIONS_TABLE",
    )
    remote_timeout_seconds: float = Field(default=10.0, alias="REMOTE_TIMEOUT_SECONDS")

    # Approved community caches
    session_cache_max_entries: int = Field(default=100, alias="SESSION_CACHE_MAX_ENTRIES")
    persistent_cache_max_entries: int = Field(
        default=500,
        alias="PERSISTENT_CACHE_MAX_ENTRIES",
    )
    cache_fallback_entries: int = Field(default=20, alias="CACHE_FALLBACK_ENTRIES")
    cache_quota_bytes: int = Field(default=5 * 1024 * 1024, alias="CACHE_QUOTA_BYTES")
    persistent_cache_backend: Literal["file", "redis"] = Field(
        default="file",
        alias="PERSISTENT_CACHE_BACKEND",
    )
    persistent_cache_dir: str = Field(default="./.circle_hub_cache", alias="PERSISTENT_CACHE_DIR")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    broadcast_store_max_entries: int = Field(default=100, alias="BROADCAST_STORE_MAX_ENTRIES")

    # Listing refresher
    listing_refresh_enabled: bool = Field(default=True, alias="LISTING_REFRESH_ENABLED")
    listing_refresh_interval_seconds: float = Field(
        default=5.0,
        alias="LISTING_REFRESH_INTERVAL_SECONDS",
    )
    listing_reload_delay_seconds: float = Field(
        default=1.0,
        alias="LISTING_RELOAD_DELAY_SECONDS",
    )

    # Payment gateway
    razorpay_key_id: str | None = Field(default=None, alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str | None = Field(default=None, alias="RAZORPAY_KEY_SECRET")
    razorpay_base_url: str = Field(
        default="https://api.razorpay.com/v1",
        alias="RAZORPAY_BASE_URL",
    )
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def supabase_enabled(self) -> bool:
        """Return True when the hosted REST backend is selected and configured."""
        return (
            self.remote_backend == "supabase"
            and bool(self.supabase_url)
            and bool(self.supabase_key)
        )

    @property
    def payments_enabled(self) -> bool:
        """Return True when Razorpay credentials are present."""
        return bool(self.razorpay_key_id and self.razorpay_key_secret)


settings = Settings()  # type: ignore[call-arg]
