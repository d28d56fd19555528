"""
Command center models.

Each section is wrapped in a SectionResult so a failed branch is reported
explicitly while the other sections still come back.
"""

from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from models.atp import AtpSnapshot
from models.base import BaseSchema
from models.customer_intent import CustomerIntentSnapshot
from models.data_quality import DataQualitySnapshot
from models.orchestration import OrchestrationSnapshot
from models.risk import RiskSnapshot
from models.substitution import SubstitutionSnapshot

T = TypeVar("T")


class SectionStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class SectionError(BaseSchema):
    """Error envelope of a failed section (AppError.to_dict() body)."""

    code: str
    message: str
    details: dict = {}


class SectionResult(BaseModel, Generic[T]):
    """Outcome of one command center section."""

    status: SectionStatus
    data: Optional[T] = None
    error: Optional[SectionError] = None

    @property
    def ok(self) -> bool:
        return self.status == SectionStatus.OK


AtpSection = SectionResult[AtpSnapshot]
OrchestrationSection = SectionResult[OrchestrationSnapshot]
CustomerIntentSection = SectionResult[CustomerIntentSnapshot]
RiskSection = SectionResult[RiskSnapshot]
SubstitutionSection = SectionResult[SubstitutionSnapshot]
DataQualitySection = SectionResult[DataQualitySnapshot]


class CommandCenterSummary(BaseSchema):
    """Cross-cutting counters. Counters of failed sections stay 0."""

    open_order_count: int = 0
    low_coverage_order_count: int = 0
    shortage_qty: float = 0
    active_picker_count: int = 0
    hot_customer_count: int = 0
    high_risk_order_count: int = 0
    substitution_need_count: int = 0
    blocked_data_checks: int = 0


class CommandCenterSnapshot(BaseSchema):
    """Composed operations snapshot."""

    generated_at: datetime
    summary: CommandCenterSummary
    failed_sections: list[str] = []

    atp: AtpSection
    orchestration: OrchestrationSection
    customer_intent: CustomerIntentSection
    risk: RiskSection
    substitution: SubstitutionSection
    data_quality: DataQualitySection
