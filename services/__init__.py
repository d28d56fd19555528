"""
Business logic services.

One engine per module. Each exposes a pure compute_* function over read
snapshots and a thin service class that reads the snapshots first.
"""

from services.operations_data_service import OperationsDataService, get_operations_data_service
from services.atp_service import AtpService, get_atp_service, compute_atp_snapshot
from services.orchestration_service import (
    OrchestrationService,
    get_orchestration_service,
    compute_orchestration_snapshot,
)
from services.substitution_service import (
    SubstitutionService,
    get_substitution_service,
    compute_substitution_snapshot,
)
from services.customer_intent_service import (
    CustomerIntentService,
    get_customer_intent_service,
    compute_customer_intent_snapshot,
)
from services.risk_service import RiskService, get_risk_service, compute_risk_snapshot
from services.data_quality_service import (
    DataQualityService,
    get_data_quality_service,
    compute_data_quality_snapshot,
)
from services.command_center_service import CommandCenterService, get_command_center_service

__all__ = [
    "OperationsDataService",
    "get_operations_data_service",
    "AtpService",
    "get_atp_service",
    "compute_atp_snapshot",
    "OrchestrationService",
    "get_orchestration_service",
    "compute_orchestration_snapshot",
    "SubstitutionService",
    "get_substitution_service",
    "compute_substitution_snapshot",
    "CustomerIntentService",
    "get_customer_intent_service",
    "compute_customer_intent_snapshot",
    "RiskService",
    "get_risk_service",
    "compute_risk_snapshot",
    "DataQualityService",
    "get_data_quality_service",
    "compute_data_quality_snapshot",
    "CommandCenterService",
    "get_command_center_service",
]
