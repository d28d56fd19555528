"""
Command center aggregator.

Builds every operations snapshot in one call. ATP is computed once and fed
to orchestration and substitution; ATP, customer intent, risk and data
quality are independent reads and run on a thread pool.

Each section comes back as a SectionResult. A failing section is logged and
reported as an error while the rest of the snapshot is still returned.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional, Type

import structlog

from config import settings
from exceptions import AppError, SectionUnavailableError
from models.command_center import (
    AtpSection,
    CommandCenterSnapshot,
    CommandCenterSummary,
    CustomerIntentSection,
    DataQualitySection,
    OrchestrationSection,
    RiskSection,
    SectionError,
    SectionResult,
    SectionStatus,
    SubstitutionSection,
)
from services.atp_service import AtpService
from services.customer_intent_service import CustomerIntentService
from services.data_quality_service import DataQualityService
from services.operations_data_service import OperationsDataService, get_operations_data_service
from services.orchestration_service import OrchestrationService
from services.risk_service import RiskService
from services.substitution_service import SubstitutionService

logger = structlog.get_logger(__name__)

SECTION_ATP = "atp"
SECTION_ORCHESTRATION = "orchestration"
SECTION_CUSTOMER_INTENT = "customer_intent"
SECTION_RISK = "risk"
SECTION_SUBSTITUTION = "substitution"
SECTION_DATA_QUALITY = "data_quality"


def section_failed(result_type: Type[SectionResult], section: str, error: Exception) -> SectionResult:
    """Convert an exception into a failed section, logging it."""
    if isinstance(error, AppError):
        body = error.to_dict()["error"]
        section_error = SectionError(
            code=body["code"],
            message=body["message"],
            details=body["details"],
        )
    else:
        section_error = SectionError(code="INTERNAL_ERROR", message=str(error))

    logger.error(
        "command_center_section_failed",
        section=section,
        error_code=section_error.code,
        error=str(error),
        error_type=type(error).__name__
    )
    return result_type(status=SectionStatus.ERROR, error=section_error)


def run_section(result_type: Type[SectionResult], section: str, build: Callable) -> SectionResult:
    try:
        return result_type(status=SectionStatus.OK, data=build())
    except Exception as e:
        return section_failed(result_type, section, e)


def build_summary(
    atp: SectionResult,
    orchestration: SectionResult,
    customer_intent: SectionResult,
    risk: SectionResult,
    substitution: SectionResult,
    data_quality: SectionResult,
) -> CommandCenterSummary:
    """Cross-cutting counters; a failed section contributes zeros."""
    summary = CommandCenterSummary()
    if atp.ok:
        summary.open_order_count = atp.data.summary.total_orders
        summary.low_coverage_order_count = (
            atp.data.summary.partial_orders + atp.data.summary.none_orders
        )
        summary.shortage_qty = atp.data.summary.total_shortage_qty
    if orchestration.ok:
        summary.active_picker_count = orchestration.data.summary.active_pickers
    if customer_intent.ok:
        summary.hot_customer_count = customer_intent.data.summary.hot_customers
    if risk.ok:
        summary.high_risk_order_count = (
            risk.data.summary.block_count + risk.data.summary.manual_review_count
        )
    if substitution.ok:
        summary.substitution_need_count = substitution.data.summary.lines_needing_substitution
    if data_quality.ok:
        summary.blocked_data_checks = data_quality.data.summary.blocked_checks
    return summary


class CommandCenterService:
    """Composes all engines over one shared data source."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        max_workers: Optional[int] = None,
    ):
        self.data = data or get_operations_data_service()
        self.max_workers = max_workers or settings.command_center_workers

    def get_snapshot(
        self,
        series: Optional[list[str]] = None,
        order_limit: Optional[int] = None,
        customer_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CommandCenterSnapshot:
        """
        Full operations snapshot.

        Args:
            series: Order series filter for ATP, orchestration and substitution
            order_limit: Order window for ATP and the risk queue
            customer_limit: Customer list size for intent
            now: Reference instant shared by every section
        """
        now = now or datetime.now(timezone.utc)
        logger.info(
            "computing_command_center_snapshot",
            series=series,
            order_limit=order_limit,
            customer_limit=customer_limit,
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            atp_future = pool.submit(
                run_section,
                AtpSection,
                SECTION_ATP,
                lambda: AtpService(self.data).get_snapshot(series, order_limit, now),
            )
            intent_future = pool.submit(
                run_section,
                CustomerIntentSection,
                SECTION_CUSTOMER_INTENT,
                lambda: CustomerIntentService(self.data).get_snapshot(customer_limit, now),
            )
            risk_future = pool.submit(
                run_section,
                RiskSection,
                SECTION_RISK,
                lambda: RiskService(self.data).get_snapshot(order_limit, now),
            )
            quality_future = pool.submit(
                run_section,
                DataQualitySection,
                SECTION_DATA_QUALITY,
                lambda: DataQualityService(self.data).get_snapshot(),
            )

            atp = atp_future.result()
            if atp.ok:
                orchestration_future = pool.submit(
                    run_section,
                    OrchestrationSection,
                    SECTION_ORCHESTRATION,
                    lambda: OrchestrationService(self.data).get_snapshot(atp=atp.data, now=now),
                )
                substitution_future = pool.submit(
                    run_section,
                    SubstitutionSection,
                    SECTION_SUBSTITUTION,
                    lambda: SubstitutionService(self.data).get_snapshot(atp=atp.data, now=now),
                )
                orchestration = orchestration_future.result()
                substitution = substitution_future.result()
            else:
                orchestration = section_failed(
                    OrchestrationSection,
                    SECTION_ORCHESTRATION,
                    SectionUnavailableError(SECTION_ORCHESTRATION, SECTION_ATP, atp.error.code),
                )
                substitution = section_failed(
                    SubstitutionSection,
                    SECTION_SUBSTITUTION,
                    SectionUnavailableError(SECTION_SUBSTITUTION, SECTION_ATP, atp.error.code),
                )

            customer_intent = intent_future.result()
            risk = risk_future.result()
            data_quality = quality_future.result()

        sections = {
            SECTION_ATP: atp,
            SECTION_ORCHESTRATION: orchestration,
            SECTION_CUSTOMER_INTENT: customer_intent,
            SECTION_RISK: risk,
            SECTION_SUBSTITUTION: substitution,
            SECTION_DATA_QUALITY: data_quality,
        }
        failed = [name for name, result in sections.items() if not result.ok]

        snapshot = CommandCenterSnapshot(
            generated_at=now,
            summary=build_summary(
                atp, orchestration, customer_intent, risk, substitution, data_quality
            ),
            failed_sections=failed,
            **sections,
        )

        logger.info(
            "command_center_snapshot_complete",
            failed_sections=failed,
            open_orders=snapshot.summary.open_order_count,
            shortage_qty=snapshot.summary.shortage_qty,
        )
        return snapshot


def get_command_center_service() -> CommandCenterService:
    """Create a CommandCenterService on the default data source."""
    return CommandCenterService()
