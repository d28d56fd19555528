"""
Warehouse orchestration models: queue counts, picker workload, pick waves.
"""

from datetime import datetime
from typing import Optional

from models.atp import CoverageStatus
from models.base import BaseSchema
from models.snapshots import WorkflowStage


class QueueCount(BaseSchema):
    """Orders sitting in one workflow stage."""

    stage: WorkflowStage
    count: int


class PickerWorkload(BaseSchema):
    """In-flight work attributed to a picker (picker_id None = unassigned)."""

    picker_id: Optional[str] = None
    picker_name: str
    active_orders: int = 0
    open_lines: int = 0
    remaining_qty: float = 0
    last_action_at: Optional[datetime] = None


class WaveOrder(BaseSchema):
    """Order row inside a pick wave."""

    order_number: str
    customer_code: str
    customer_name: str
    line_count: int
    remaining_qty: float
    shortage_qty: float
    coverage_status: CoverageStatus
    priority_score: int


class PickWave(BaseSchema):
    """Capacity-bounded batch of orders from one series."""

    wave_id: str
    order_series: str
    order_count: int
    line_count: int
    total_remaining_qty: float
    shortage_qty: float
    estimated_minutes: int
    recommended_picker_count: int
    orders: list[WaveOrder]


class OrchestrationSummary(BaseSchema):
    """Backlog totals for the selected order window."""

    open_orders: int = 0
    backlog_lines: int = 0
    backlog_qty: float = 0
    shortage_orders: int = 0
    active_pickers: int = 0
    wave_count: int = 0


class OrchestrationSnapshot(BaseSchema):
    """Orchestration result."""

    summary: OrchestrationSummary
    queue_by_status: list[QueueCount]
    picker_workload: list[PickerWorkload]
    waves: list[PickWave]
