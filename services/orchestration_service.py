"""
Warehouse orchestration planner.

Turns the ATP order set plus workflow state into:
- queue counts per workflow stage
- picker workload for in-flight orders
- pick waves: per-series batches bounded by order and line capacity
"""

import math
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

import structlog

from config.intelligence import DEFAULT_WAVE_CONFIG, WaveConfig
from models.atp import AtpOrder, AtpSnapshot
from models.orchestration import (
    OrchestrationSnapshot,
    OrchestrationSummary,
    PickerWorkload,
    PickWave,
    QueueCount,
    WaveOrder,
)
from models.snapshots import Picker, WorkflowStage, WorkflowState
from services.atp_service import AtpService
from services.operations_data_service import OperationsDataService, get_operations_data_service
from utils.number_utils import clamp, round_half_up
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

UNASSIGNED_KEY = "UNASSIGNED"
UNASSIGNED_LABEL = "Unassigned"


def resolve_stages(
    atp_orders: Iterable[AtpOrder],
    workflows_by_order: dict[str, WorkflowState],
) -> dict[str, WorkflowStage]:
    """Current stage per order; the workflow row wins over the ATP copy."""
    stages = {}
    for order in atp_orders:
        workflow = workflows_by_order.get(order.order_number)
        stages[order.order_number] = workflow.stage if workflow else order.workflow_stage
    return stages


def count_queue_by_status(stages: dict[str, WorkflowStage]) -> list[QueueCount]:
    """Orders per stage, every stage listed in pipeline order."""
    counts = {stage: 0 for stage in WorkflowStage}
    for stage in stages.values():
        counts[stage] += 1
    return [QueueCount(stage=stage, count=counts[stage]) for stage in WorkflowStage]


def build_picker_workload(
    workflows: Iterable[WorkflowState],
    picker_names: dict[str, str],
) -> list[PickerWorkload]:
    """
    Aggregate in-flight workflows by assigned picker.

    Orders still PENDING or already DISPATCHED are not anyone's workload.
    """
    buckets: dict[str, dict] = {}
    for workflow in workflows:
        if workflow.stage.is_initial or workflow.stage.is_terminal:
            continue

        picker_id = normalize_text(workflow.assigned_picker_id) or None
        key = picker_id or UNASSIGNED_KEY
        bucket = buckets.setdefault(key, {
            "picker_id": picker_id,
            "picker_name": picker_names.get(picker_id, picker_id) if picker_id else UNASSIGNED_LABEL,
            "active_orders": 0,
            "open_lines": 0,
            "remaining_qty": 0.0,
            "last_action_at": None,
        })

        open_items = [item for item in workflow.items if item.open_qty > 0]
        bucket["active_orders"] += 1
        bucket["open_lines"] += len(open_items)
        bucket["remaining_qty"] += sum(item.open_qty for item in open_items)
        if workflow.last_action_at and (
            bucket["last_action_at"] is None or workflow.last_action_at > bucket["last_action_at"]
        ):
            bucket["last_action_at"] = workflow.last_action_at

    workload = [PickerWorkload(**bucket) for bucket in buckets.values()]
    workload.sort(key=lambda row: (-row.active_orders, -row.open_lines))
    return workload


def group_orders_by_series(
    orders: Iterable[AtpOrder],
    stages: dict[str, WorkflowStage],
    fallback_series: str,
) -> dict[str, list[AtpOrder]]:
    """Non-dispatched orders keyed by series, blank series under the fallback."""
    groups: dict[str, list[AtpOrder]] = defaultdict(list)
    for order in orders:
        stage = stages.get(order.order_number, order.workflow_stage)
        if stage.is_terminal:
            continue
        groups[normalize_text(order.order_series) or fallback_series].append(order)
    return dict(groups)


def _build_wave(
    series: str,
    index: int,
    bucket: list[AtpOrder],
    config: WaveConfig,
) -> PickWave:
    line_count = sum(order.line_count for order in bucket)
    shortage_qty = sum(order.shortage_qty for order in bucket)
    return PickWave(
        wave_id=f"{series}-{index}",
        order_series=series,
        order_count=len(bucket),
        line_count=line_count,
        total_remaining_qty=sum(order.remaining_qty for order in bucket),
        shortage_qty=shortage_qty,
        estimated_minutes=max(
            config.min_minutes,
            round_half_up(
                line_count * config.minutes_per_line
                + shortage_qty * config.minutes_per_shortage_unit
            ),
        ),
        recommended_picker_count=int(clamp(
            math.ceil(line_count / config.lines_per_picker), 1, config.max_pickers
        )),
        orders=[
            WaveOrder(
                order_number=order.order_number,
                customer_code=order.customer_code,
                customer_name=order.customer_name,
                line_count=order.line_count,
                remaining_qty=order.remaining_qty,
                shortage_qty=order.shortage_qty,
                coverage_status=order.coverage_status,
                priority_score=order.priority_score,
            )
            for order in bucket
        ],
    )


def plan_waves(
    groups: dict[str, list[AtpOrder]],
    config: WaveConfig = DEFAULT_WAVE_CONFIG,
) -> list[PickWave]:
    """
    Greedy wave packing per series.

    Within a series, fully covered orders go first (they can actually be
    picked), then by priority. A wave closes before it would exceed
    max_orders or max_lines; an order larger than max_lines on its own still
    gets a wave.
    """
    waves = []
    for series in sorted(groups):
        ranked = sorted(
            groups[series],
            key=lambda order: (-order.coverage_status.rank, -order.priority_score),
        )

        index = 1
        bucket: list[AtpOrder] = []
        line_total = 0
        for order in ranked:
            if bucket and (
                len(bucket) >= config.max_orders
                or line_total + order.line_count > config.max_lines
            ):
                waves.append(_build_wave(series, index, bucket, config))
                index += 1
                bucket = []
                line_total = 0
            bucket.append(order)
            line_total += order.line_count

        if bucket:
            waves.append(_build_wave(series, index, bucket, config))

    return waves


def compute_orchestration_snapshot(
    atp: AtpSnapshot,
    workflows: Iterable[WorkflowState],
    pickers: Iterable[Picker],
    config: WaveConfig = DEFAULT_WAVE_CONFIG,
) -> OrchestrationSnapshot:
    workflows = list(workflows)
    workflows_by_order = {workflow.order_number: workflow for workflow in workflows}
    picker_names = {picker.id: picker.label for picker in pickers}

    stages = resolve_stages(atp.orders, workflows_by_order)
    picker_workload = build_picker_workload(workflows, picker_names)
    waves = plan_waves(group_orders_by_series(atp.orders, stages, config.fallback_series), config)

    summary = OrchestrationSummary(
        open_orders=atp.summary.total_orders,
        backlog_lines=sum(order.line_count for order in atp.orders),
        backlog_qty=sum(order.remaining_qty for order in atp.orders),
        shortage_orders=sum(1 for order in atp.orders if order.shortage_qty > 0),
        active_pickers=sum(1 for row in picker_workload if row.picker_id),
        wave_count=len(waves),
    )
    return OrchestrationSnapshot(
        summary=summary,
        queue_by_status=count_queue_by_status(stages),
        picker_workload=picker_workload,
        waves=waves,
    )


class OrchestrationService:
    """Builds the orchestration snapshot, reusing an ATP result when given one."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        config: WaveConfig = DEFAULT_WAVE_CONFIG,
    ):
        self.data = data or get_operations_data_service()
        self.config = config

    def get_snapshot(
        self,
        series: Optional[list[str]] = None,
        order_limit: Optional[int] = None,
        atp: Optional[AtpSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> OrchestrationSnapshot:
        if atp is None:
            atp = AtpService(self.data).get_snapshot(series=series, order_limit=order_limit, now=now)

        logger.info("computing_orchestration_snapshot", orders=len(atp.orders))

        workflows = self.data.get_workflows([order.order_number for order in atp.orders])
        picker_ids = sorted({
            normalize_text(w.assigned_picker_id) for w in workflows if normalize_text(w.assigned_picker_id)
        })
        pickers = self.data.get_pickers(picker_ids)

        snapshot = compute_orchestration_snapshot(atp, workflows, pickers, self.config)

        logger.info(
            "orchestration_snapshot_complete",
            waves=snapshot.summary.wave_count,
            active_pickers=snapshot.summary.active_pickers,
            backlog_lines=snapshot.summary.backlog_lines,
        )
        return snapshot


def get_orchestration_service() -> OrchestrationService:
    """Create an OrchestrationService on the default data source."""
    return OrchestrationService()
