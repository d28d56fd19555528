"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Snapshots
    InvalidSnapshotRowError,
    SectionUnavailableError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Snapshots
    "InvalidSnapshotRowError",
    "SectionUnavailableError",
]
