"""
Application settings loaded from environment variables.

Covers the Supabase connection, query limits and runtime knobs. Scoring
weights are not settings; they live in config.intelligence.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Engine settings, read from .env or the environment.

    Defaults go through the same [limit_min, limit_max] clamp as any
    requested limit.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (preferred; reads bypass RLS)"
    )

    # ===================
    # QUERY LIMITS
    # ===================
    limit_min: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Lowest limit any snapshot query is clamped to"
    )
    limit_max: int = Field(
        default=300,
        ge=100,
        le=1000,
        description="Highest limit any snapshot query is clamped to"
    )
    default_order_limit: int = Field(
        default=150,
        ge=1,
        le=1000,
        description="Open orders per ATP/orchestration/substitution window"
    )
    default_risk_order_limit: int = Field(
        default=120,
        ge=1,
        le=1000,
        description="Pending-approval orders scored by the risk engine"
    )
    default_customer_limit: int = Field(
        default=80,
        ge=1,
        le=1000,
        description="Customers returned by the intent scorer"
    )

    # ===================
    # COMMAND CENTER
    # ===================
    command_center_workers: int = Field(
        default=4,
        ge=1,
        le=16,
        description="Threads used to build command center sections concurrently"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
