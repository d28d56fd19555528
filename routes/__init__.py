"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.operations import router as operations_router

__all__ = [
    "operations_router",
]
