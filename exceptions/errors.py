"""
Custom exception classes for the application.

Every error raised by the engine is an AppError so routes can render the
standard error envelope.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "DATABASE_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SNAPSHOT ERRORS
# ===================

class InvalidSnapshotRowError(ValidationError):
    """A row read from a collaborator table could not be parsed."""

    def __init__(self, table: str, errors: list[dict]):
        super().__init__(
            code="INVALID_SNAPSHOT_ROW",
            message=f"Unreadable row in {table}",
            details={"table": table, "errors": errors}
        )


class SectionUnavailableError(AppError):
    """A command center section could not be built because its input failed."""

    def __init__(self, section: str, depends_on: str, cause: str):
        super().__init__(
            code="SECTION_UNAVAILABLE",
            message=f"{section} skipped: {depends_on} failed",
            status_code=500,
            details={"section": section, "depends_on": depends_on, "cause": cause}
        )
