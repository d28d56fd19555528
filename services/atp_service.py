"""
Available-to-promise engine.

For each open order line:
    stock          = on-hand in the line's warehouse (or all warehouses)
    reserved_other = active reservations of every other open order
    atp            = max(stock - reserved_other, 0)
    coverable      = min(atp, remaining)
    shortage       = remaining - coverable

Orders are then rolled up and ranked by a priority score that favours
uncovered, old and short orders.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from config import settings
from config.intelligence import DEFAULT_ATP_WEIGHTS, HOUR_SECONDS, AtpWeights
from models.atp import AtpLine, AtpOrder, AtpSnapshot, AtpSummary, CoverageStatus
from models.snapshots import CatalogProduct, OrderLine, PendingOrder, WorkflowStage
from services.operations_data_service import OperationsDataService, get_operations_data_service
from services.pending_line_service import (
    build_reservation_index,
    parse_pending_lines,
    stock_for_warehouse,
)
from utils.number_utils import clamp_limit, round_half_up
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)


def coverage_status(remaining_qty: float, coverable_qty: float) -> CoverageStatus:
    if remaining_qty <= 0 or coverable_qty >= remaining_qty:
        return CoverageStatus.FULL
    if coverable_qty <= 0:
        return CoverageStatus.NONE
    return CoverageStatus.PARTIAL


def order_coverage_status(line_statuses: list[CoverageStatus]) -> CoverageStatus:
    """FULL only if every line is FULL, NONE only if every line is NONE."""
    if all(status == CoverageStatus.FULL for status in line_statuses):
        return CoverageStatus.FULL
    if all(status == CoverageStatus.NONE for status in line_statuses):
        return CoverageStatus.NONE
    return CoverageStatus.PARTIAL


def covered_percent(coverable_qty: float, remaining_qty: float) -> int:
    if remaining_qty <= 0:
        return 100
    return round_half_up(coverable_qty / remaining_qty * 100)


def priority_score(
    status: CoverageStatus,
    age_hours: float,
    shortage_qty: float,
    weights: AtpWeights = DEFAULT_ATP_WEIGHTS,
) -> int:
    bonus = {
        CoverageStatus.NONE: weights.none_coverage_bonus,
        CoverageStatus.PARTIAL: weights.partial_coverage_bonus,
        CoverageStatus.FULL: 0,
    }[status]
    return round_half_up(
        bonus
        + min(age_hours / weights.age_hours_divisor, weights.age_cap)
        + min(shortage_qty, weights.shortage_cap)
    )


def select_order_window(
    orders: Iterable[PendingOrder],
    series: Optional[list[str]],
    limit: int,
) -> list[PendingOrder]:
    """Filter by series, order by date then number, cap at limit."""
    wanted = {normalize_text(s) for s in (series or []) if normalize_text(s)}
    selected = [
        order for order in orders
        if not wanted or normalize_text(order.order_series) in wanted
    ]
    selected.sort(key=lambda order: (order.order_date, order.order_number))
    return selected[:limit]


def compute_line(
    line: OrderLine,
    product: Optional[CatalogProduct],
    reserved_by_code: dict[str, float],
) -> AtpLine:
    """Coverage of one line. Unknown products have zero stock."""
    own_reserved = line.own_reserved_qty
    reserved_by_others = max(reserved_by_code.get(line.product_code, 0) - own_reserved, 0)
    stock_qty = stock_for_warehouse(product.warehouse_stocks, line.warehouse_code) if product else 0.0
    atp_qty = max(stock_qty - reserved_by_others, 0)
    coverable_qty = min(atp_qty, line.remaining_qty)
    shortage_qty = max(line.remaining_qty - coverable_qty, 0)

    return AtpLine(
        line_key=line.line_key,
        row_number=line.row_number,
        product_code=line.product_code,
        product_name=line.product_name,
        unit=line.unit,
        category_id=product.category_id if product else None,
        category_name=product.category_name if product else None,
        brand_code=product.brand_code if product else None,
        remaining_qty=line.remaining_qty,
        stock_qty=stock_qty,
        own_reserved_qty=own_reserved,
        reserved_by_others_qty=reserved_by_others,
        atp_qty=atp_qty,
        coverable_qty=coverable_qty,
        shortage_qty=shortage_qty,
        coverage_status=coverage_status(line.remaining_qty, coverable_qty),
    )


def compute_order(
    order: PendingOrder,
    products_by_code: dict[str, CatalogProduct],
    reserved_by_code: dict[str, float],
    stage: WorkflowStage,
    now: datetime,
    weights: AtpWeights = DEFAULT_ATP_WEIGHTS,
) -> AtpOrder:
    lines = [
        compute_line(line, products_by_code.get(line.product_code), reserved_by_code)
        for line in parse_pending_lines(order.items)
    ]

    remaining_qty = sum(line.remaining_qty for line in lines)
    coverable_qty = sum(line.coverable_qty for line in lines)
    shortage_qty = sum(line.shortage_qty for line in lines)
    status = order_coverage_status([line.coverage_status for line in lines])
    age_hours = max((now - order.order_date).total_seconds() / HOUR_SECONDS, 0)

    return AtpOrder(
        order_number=order.order_number,
        order_series=order.order_series,
        order_sequence=order.order_sequence,
        customer_code=order.customer_code,
        customer_name=order.customer_name,
        order_date=order.order_date,
        delivery_date=order.delivery_date,
        workflow_stage=stage,
        line_count=len(lines),
        remaining_qty=remaining_qty,
        coverable_qty=coverable_qty,
        shortage_qty=shortage_qty,
        covered_percent=covered_percent(coverable_qty, remaining_qty),
        coverage_status=status,
        priority_score=priority_score(status, age_hours, shortage_qty, weights),
        lines=lines,
    )


def compute_atp_snapshot(
    selected_orders: list[PendingOrder],
    all_orders: Iterable[PendingOrder],
    products: Iterable[CatalogProduct],
    workflow_stages: dict[str, WorkflowStage],
    now: datetime,
    weights: AtpWeights = DEFAULT_ATP_WEIGHTS,
) -> AtpSnapshot:
    """
    Compute ATP for the selected window.

    Args:
        selected_orders: Window to report on, already in date order
        all_orders: Every open order; source of the reservation index
        products: Catalog rows for the window's product codes
        workflow_stages: Stage per order number (missing = PENDING)
        now: Reference instant for order age
    """
    reserved_by_code = build_reservation_index(all_orders)
    products_by_code = {normalize_text(p.code): p for p in products}

    orders = [
        compute_order(
            order,
            products_by_code,
            reserved_by_code,
            workflow_stages.get(order.order_number, WorkflowStage.PENDING),
            now,
            weights,
        )
        for order in selected_orders
    ]
    # sort() is stable, so ties keep date order
    orders.sort(key=lambda order: order.priority_score, reverse=True)

    total_remaining = sum(order.remaining_qty for order in orders)
    total_coverable = sum(order.coverable_qty for order in orders)

    summary = AtpSummary(
        total_orders=len(orders),
        full_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.FULL),
        partial_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.PARTIAL),
        none_orders=sum(1 for o in orders if o.coverage_status == CoverageStatus.NONE),
        total_remaining_qty=total_remaining,
        total_coverable_qty=total_coverable,
        total_shortage_qty=sum(order.shortage_qty for order in orders),
        covered_percent=covered_percent(total_coverable, total_remaining),
    )
    return AtpSnapshot(summary=summary, orders=orders)


class AtpService:
    """Reads open orders, catalog and workflow stages, then computes ATP."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        weights: AtpWeights = DEFAULT_ATP_WEIGHTS,
    ):
        self.data = data or get_operations_data_service()
        self.weights = weights

    def get_snapshot(
        self,
        series: Optional[list[str]] = None,
        order_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AtpSnapshot:
        """
        ATP snapshot for a window of open orders.

        Args:
            series: Order series to include (all when empty)
            order_limit: Window size, clamped server-side
            now: Reference instant (defaults to current UTC time)
        """
        now = now or datetime.now(timezone.utc)
        limit = clamp_limit(
            order_limit, settings.default_order_limit, settings.limit_min, settings.limit_max
        )
        logger.info("computing_atp_snapshot", series=series, order_limit=limit)

        all_orders = self.data.get_open_orders()
        selected = select_order_window(all_orders, series, limit)

        codes = sorted({
            line.product_code
            for order in selected
            for line in parse_pending_lines(order.items)
        })
        products = self.data.get_products(codes=codes)
        workflows = self.data.get_workflows([order.order_number for order in selected])
        stages = {workflow.order_number: workflow.stage for workflow in workflows}

        snapshot = compute_atp_snapshot(selected, all_orders, products, stages, now, self.weights)

        logger.info(
            "atp_snapshot_complete",
            orders=snapshot.summary.total_orders,
            full=snapshot.summary.full_orders,
            partial=snapshot.summary.partial_orders,
            none=snapshot.summary.none_orders,
            shortage_qty=snapshot.summary.total_shortage_qty,
        )
        return snapshot


def get_atp_service() -> AtpService:
    """Create an AtpService on the default data source."""
    return AtpService()
