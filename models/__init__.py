"""
Pydantic models for validation and serialization.

snapshots: rows read from the collaborator tables
atp, orchestration, substitution, customer_intent, risk, data_quality,
command_center: engine results
"""

from models.base import BaseSchema
from models.snapshots import (
    WorkflowStage,
    ActivityType,
    OrderLine,
    PendingOrder,
    CatalogProduct,
    WorkflowItem,
    WorkflowState,
    Picker,
    CustomerAccount,
    CustomerActivityEvent,
    LastActivity,
    CartLine,
    CommerceOrder,
    ApprovalOrder,
    CreditPosition,
)
from models.atp import (
    CoverageStatus,
    AtpLine,
    AtpOrder,
    AtpSummary,
    AtpSnapshot,
)
from models.orchestration import (
    QueueCount,
    PickerWorkload,
    WaveOrder,
    PickWave,
    OrchestrationSummary,
    OrchestrationSnapshot,
)
from models.substitution import (
    SubstituteCandidate,
    SubstitutionSuggestion,
    SubstitutionSummary,
    SubstitutionSnapshot,
)
from models.customer_intent import (
    IntentSegment,
    ChurnRisk,
    CustomerIntent,
    CustomerIntentSummary,
    CustomerIntentSnapshot,
)
from models.risk import (
    RiskDecision,
    OrderRisk,
    RiskSummary,
    RiskSnapshot,
)
from models.data_quality import (
    Severity,
    QualitySample,
    DataQualityCheck,
    DataQualitySummary,
    DataQualitySnapshot,
)
from models.command_center import (
    SectionStatus,
    SectionError,
    SectionResult,
    CommandCenterSummary,
    CommandCenterSnapshot,
)

__all__ = [
    # Base
    "BaseSchema",

    # Snapshots
    "WorkflowStage",
    "ActivityType",
    "OrderLine",
    "PendingOrder",
    "CatalogProduct",
    "WorkflowItem",
    "WorkflowState",
    "Picker",
    "CustomerAccount",
    "CustomerActivityEvent",
    "LastActivity",
    "CartLine",
    "CommerceOrder",
    "ApprovalOrder",
    "CreditPosition",

    # ATP
    "CoverageStatus",
    "AtpLine",
    "AtpOrder",
    "AtpSummary",
    "AtpSnapshot",

    # Orchestration
    "QueueCount",
    "PickerWorkload",
    "WaveOrder",
    "PickWave",
    "OrchestrationSummary",
    "OrchestrationSnapshot",

    # Substitution
    "SubstituteCandidate",
    "SubstitutionSuggestion",
    "SubstitutionSummary",
    "SubstitutionSnapshot",

    # Customer intent
    "IntentSegment",
    "ChurnRisk",
    "CustomerIntent",
    "CustomerIntentSummary",
    "CustomerIntentSnapshot",

    # Risk
    "RiskDecision",
    "OrderRisk",
    "RiskSummary",
    "RiskSnapshot",

    # Data quality
    "Severity",
    "QualitySample",
    "DataQualityCheck",
    "DataQualitySummary",
    "DataQualitySnapshot",

    # Command center
    "SectionStatus",
    "SectionError",
    "SectionResult",
    "CommandCenterSummary",
    "CommandCenterSnapshot",
]
