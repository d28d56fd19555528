"""
Available-to-promise models.

ATP nets each order line's remaining demand against on-hand stock minus the
active reservations held by every other open order.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.snapshots import WorkflowStage


class CoverageStatus(str, Enum):
    """Whether remaining demand can be met from current ATP."""

    FULL = "FULL"
    PARTIAL = "PARTIAL"
    NONE = "NONE"

    @property
    def rank(self) -> int:
        """NONE < PARTIAL < FULL."""
        return {"NONE": 1, "PARTIAL": 2, "FULL": 3}[self.value]


class AtpLine(BaseSchema):
    """Coverage of one order line."""

    line_key: str
    row_number: int
    product_code: str
    product_name: str
    unit: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    brand_code: Optional[str] = None

    remaining_qty: float
    stock_qty: float
    own_reserved_qty: float
    reserved_by_others_qty: float
    atp_qty: float
    coverable_qty: float
    shortage_qty: float
    coverage_status: CoverageStatus


class AtpOrder(BaseSchema):
    """Coverage roll-up of one open order."""

    order_number: str
    order_series: str
    order_sequence: Optional[int] = None
    customer_code: str
    customer_name: str
    order_date: datetime
    delivery_date: Optional[datetime] = None
    workflow_stage: WorkflowStage = WorkflowStage.PENDING

    line_count: int
    remaining_qty: float
    coverable_qty: float
    shortage_qty: float
    covered_percent: int
    coverage_status: CoverageStatus
    priority_score: int = Field(..., description="Higher means pick sooner")
    lines: list[AtpLine]


class AtpSummary(BaseSchema):
    """Totals across the selected order window."""

    total_orders: int = 0
    full_orders: int = 0
    partial_orders: int = 0
    none_orders: int = 0
    total_remaining_qty: float = 0
    total_coverable_qty: float = 0
    total_shortage_qty: float = 0
    covered_percent: int = 100


class AtpSnapshot(BaseSchema):
    """ATP result, orders sorted by priority score descending."""

    summary: AtpSummary
    orders: list[AtpOrder]
