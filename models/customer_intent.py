"""
Customer purchase-intent models.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema


class IntentSegment(str, Enum):
    """Purchase intent bucket."""

    HOT = "HOT"    # score >= 70
    WARM = "WARM"  # score >= 40
    COLD = "COLD"


class ChurnRisk(str, Enum):
    """Likelihood that a customer has disengaged."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CustomerIntent(BaseSchema):
    """Scored top-level customer."""

    customer_id: str
    customer_code: str
    customer_name: str
    sector_code: Optional[str] = None

    intent_score: int = Field(..., ge=0, le=100)
    intent_segment: IntentSegment
    churn_risk: ChurnRisk
    recency_days: Optional[int] = None

    page_views: int = 0
    product_views: int = 0
    cart_adds: int = 0
    cart_updates: int = 0
    searches: int = 0
    active_minutes: int = 0
    clicks: int = 0

    cart_items: float = 0
    cart_amount: float = 0
    order_count_30d: int = 0
    order_amount_30d: float = 0

    next_best_action: str


class CustomerIntentSummary(BaseSchema):
    """Segment counts over every active top-level customer."""

    total_customers: int = 0
    hot_customers: int = 0
    warm_customers: int = 0
    cold_customers: int = 0
    high_churn_risk_customers: int = 0


class CustomerIntentSnapshot(BaseSchema):
    """Customer intent result, customers sorted by intent score descending."""

    summary: CustomerIntentSummary
    customers: list[CustomerIntent]
