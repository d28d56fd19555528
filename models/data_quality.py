"""
Catalog data-quality models.
"""

from enum import Enum

from pydantic import Field

from models.base import BaseSchema


class Severity(str, Enum):
    """Impact of a data-quality violation."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class QualitySample(BaseSchema):
    """One violating record shown to the user."""

    code: str
    name: str
    detail: str


class DataQualityCheck(BaseSchema):
    """Result of one named check."""

    code: str
    title: str
    severity: Severity
    blocking: bool = Field(..., description="Violations of this rule block operations")
    blocked: bool = Field(..., description="Blocking rule with at least one violation")
    count: int
    description: str
    sample: list[QualitySample]


class DataQualitySummary(BaseSchema):
    total_issues: int = 0
    blocked_checks: int = 0
    health_score: int = Field(100, ge=0, le=100)


class DataQualitySnapshot(BaseSchema):
    """Data quality result, checks in fixed battery order."""

    summary: DataQualitySummary
    checks: list[DataQualityCheck]
