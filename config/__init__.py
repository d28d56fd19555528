"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Cached settings accessor
    get_supabase_client: Shared Supabase client
    check_connection: Health probe over the core tables
    intelligence weights: see config.intelligence
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
    DatabaseConnectionError,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "get_supabase_client",
    "check_connection",
    "DatabaseConnectionError",
]
