"""
Credit risk gating models for pending-approval orders.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema


class RiskDecision(str, Enum):
    """Approval recommendation."""

    AUTO_APPROVE = "AUTO_APPROVE"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    BLOCK = "BLOCK"


class OrderRisk(BaseSchema):
    """Scored pending-approval order."""

    order_id: str
    order_number: str
    created_at: datetime
    pending_days: int
    customer_id: str
    customer_code: str
    customer_name: str
    order_amount: float
    item_count: int

    has_credit_position: bool
    past_due_balance: float = 0
    not_due_balance: float = 0
    total_balance: float = 0
    classification: Optional[str] = None
    manual_risk_score: Optional[float] = None

    risk_score: int = Field(..., ge=0, le=100)
    decision: RiskDecision
    reasons: list[str]


class RiskSummary(BaseSchema):
    total_pending_orders: int = 0
    total_pending_amount: float = 0
    auto_approve_count: int = 0
    manual_review_count: int = 0
    block_count: int = 0


class RiskSnapshot(BaseSchema):
    """Risk result, orders sorted by risk score descending."""

    summary: RiskSummary
    orders: list[OrderRisk]
