"""
Base schemas shared by every snapshot model.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from utils.number_utils import to_number


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


def coerce_number(value: Any) -> float:
    """Field validator body: missing or unparseable numbers become 0."""
    return to_number(value)


def coerce_utc(value: Any) -> Any:
    """
    Field validator body: treat naive timestamps as UTC.

    Supabase returns offsets, but seeded rows and tests sometimes don't.
    Non-datetime input is left for pydantic to parse.
    """
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
