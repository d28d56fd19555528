"""
Operations intelligence API routes.

One read-only endpoint per engine plus the command center. Limits are taken
as raw query strings and resolved server-side: missing, non-numeric or
non-positive values fall back to the default, everything is clamped.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from exceptions import AppError
from models.atp import AtpSnapshot
from models.command_center import CommandCenterSnapshot
from models.customer_intent import CustomerIntentSnapshot
from models.data_quality import DataQualitySnapshot
from models.orchestration import OrchestrationSnapshot
from models.risk import RiskSnapshot
from models.substitution import SubstitutionSnapshot
from services.atp_service import get_atp_service
from services.command_center_service import get_command_center_service
from services.customer_intent_service import get_customer_intent_service
from services.data_quality_service import get_data_quality_service
from services.orchestration_service import get_orchestration_service
from services.risk_service import get_risk_service
from services.substitution_service import get_substitution_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/operations", tags=["Operations"])

SERIES_DESCRIPTION = "Order series filter; repeat the param or comma-separate values"
ORDER_LIMIT_DESCRIPTION = "Order window size (clamped to 20-300)"
CUSTOMER_LIMIT_DESCRIPTION = "Customer list size (clamped to 20-300)"


# ===================
# HELPERS
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def parse_series(values: Optional[list[str]]) -> Optional[list[str]]:
    """
    Flatten series params.

    ?series=A&series=B,C -> ["A", "B", "C"]. Blank entries are dropped;
    nothing left means no filter.
    """
    if not values:
        return None
    series = [
        part.strip()
        for value in values
        for part in value.split(",")
        if part.strip()
    ]
    return series or None


# ===================
# ROUTES
# ===================

@router.get("/atp", response_model=AtpSnapshot)
async def get_atp(
    series: Optional[list[str]] = Query(None, description=SERIES_DESCRIPTION),
    order_limit: Optional[str] = Query(None, description=ORDER_LIMIT_DESCRIPTION),
):
    """
    Available-to-promise per open order line.

    Orders are sorted by priority score, highest first.
    """
    try:
        service = get_atp_service()
        return service.get_snapshot(series=parse_series(series), order_limit=order_limit)
    except Exception as e:
        return handle_error(e)


@router.get("/orchestration", response_model=OrchestrationSnapshot)
async def get_orchestration(
    series: Optional[list[str]] = Query(None, description=SERIES_DESCRIPTION),
    order_limit: Optional[str] = Query(None, description=ORDER_LIMIT_DESCRIPTION),
):
    """
    Warehouse queue counts, picker workload and pick waves.
    """
    try:
        service = get_orchestration_service()
        return service.get_snapshot(series=parse_series(series), order_limit=order_limit)
    except Exception as e:
        return handle_error(e)


@router.get("/customer-intent", response_model=CustomerIntentSnapshot)
async def get_customer_intent(
    customer_limit: Optional[str] = Query(None, description=CUSTOMER_LIMIT_DESCRIPTION),
):
    """
    Intent score, segment and churn risk per top-level customer.

    **Segments:**
    - `HOT`: score >= 70
    - `WARM`: score >= 40
    - `COLD`: below 40
    """
    try:
        service = get_customer_intent_service()
        return service.get_snapshot(customer_limit=customer_limit)
    except Exception as e:
        return handle_error(e)


@router.get("/risk", response_model=RiskSnapshot)
async def get_risk(
    order_limit: Optional[str] = Query(None, description=ORDER_LIMIT_DESCRIPTION),
):
    """
    Credit risk and approval recommendation for pending-approval orders.
    """
    try:
        service = get_risk_service()
        return service.get_snapshot(order_limit=order_limit)
    except Exception as e:
        return handle_error(e)


@router.get("/substitution", response_model=SubstitutionSnapshot)
async def get_substitution(
    series: Optional[list[str]] = Query(None, description=SERIES_DESCRIPTION),
    order_limit: Optional[str] = Query(None, description=ORDER_LIMIT_DESCRIPTION),
):
    """
    Ranked in-stock substitutes for every shortage line.
    """
    try:
        service = get_substitution_service()
        return service.get_snapshot(series=parse_series(series), order_limit=order_limit)
    except Exception as e:
        return handle_error(e)


@router.get("/data-quality", response_model=DataQualitySnapshot)
async def get_data_quality():
    """
    Catalog and open-order data-quality checks with a health score.
    """
    try:
        service = get_data_quality_service()
        return service.get_snapshot()
    except Exception as e:
        return handle_error(e)


@router.get("/command-center", response_model=CommandCenterSnapshot)
async def get_command_center(
    series: Optional[list[str]] = Query(None, description=SERIES_DESCRIPTION),
    order_limit: Optional[str] = Query(None, description=ORDER_LIMIT_DESCRIPTION),
    customer_limit: Optional[str] = Query(None, description=CUSTOMER_LIMIT_DESCRIPTION),
):
    """
    Every operations snapshot in one response.

    A failing section is returned with `status: "error"` and listed in
    `failed_sections`; the other sections are still returned.
    """
    try:
        service = get_command_center_service()
        return service.get_snapshot(
            series=parse_series(series),
            order_limit=order_limit,
            customer_limit=customer_limit,
        )
    except Exception as e:
        return handle_error(e)
