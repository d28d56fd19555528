"""
Supabase client for the operations data source.

The engine only reads; no write path goes through this client.
"""

from functools import lru_cache

import structlog
from supabase import create_client, Client

from config.settings import settings
from exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

# Tables probed by check_connection(); the engines cannot run without them
HEALTH_TABLES = {
    "products": "code",
    "pending_orders": "order_number",
}


class DatabaseConnectionError(ExternalServiceError):
    """Supabase client could not be created."""

    def __init__(self, message: str):
        super().__init__(service="supabase", message=message)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Shared Supabase client, created on first use.

    The service role key is preferred so reads are not filtered by
    row-level security; the anon key works for local projects.

    Raises:
        DatabaseConnectionError: If the client cannot be created
    """
    logger.info("connecting_to_supabase", url=settings.supabase_url[:30] + "...")
    try:
        client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise DatabaseConnectionError(f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected")
    return client


def check_connection() -> dict:
    """
    Probe the core tables.

    Returns:
        {"status": "healthy", "tables": {name: row_count}} or
        {"status": "unhealthy", "error": "..."}
    """
    try:
        client = get_supabase_client()
        counts = {}
        for table, column in HEALTH_TABLES.items():
            result = client.table(table).select(column, count="exact").limit(1).execute()
            counts[table] = result.count
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}

    return {"status": "healthy", "tables": counts}
