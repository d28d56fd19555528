"""
Read snapshots supplied by the collaborator tables.

These are the inputs of the engines. They are parsed once by the operations
data source and never mutated afterwards.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema, coerce_number, coerce_utc


class WorkflowStage(str, Enum):
    """Warehouse fulfillment stages, in pipeline order."""

    PENDING = "PENDING"
    PICKING = "PICKING"
    READY_FOR_LOADING = "READY_FOR_LOADING"
    PARTIALLY_LOADED = "PARTIALLY_LOADED"
    LOADED = "LOADED"
    DISPATCHED = "DISPATCHED"

    @property
    def is_initial(self) -> bool:
        return self is WorkflowStage.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is WorkflowStage.DISPATCHED


class ActivityType(str, Enum):
    """Customer storefront events."""

    PAGE_VIEW = "PAGE_VIEW"
    PRODUCT_VIEW = "PRODUCT_VIEW"
    CART_ADD = "CART_ADD"
    CART_UPDATE = "CART_UPDATE"
    SEARCH = "SEARCH"
    ACTIVE_PING = "ACTIVE_PING"  # carries duration_seconds / click_count


# ===================
# ORDERS
# ===================

class OrderLine(BaseSchema):
    """Canonical open-order line produced by the pending-line normalizer."""

    line_key: str
    row_number: int
    product_code: str
    product_name: str
    unit: str
    remaining_qty: float = 0
    reserved_qty: float = 0
    reserved_delivered_qty: float = 0
    warehouse_code: Optional[str] = None

    @property
    def own_reserved_qty(self) -> float:
        """Active claim: reserved minus what already shipped against it."""
        return max(self.reserved_qty - self.reserved_delivered_qty, 0)


class PendingOrder(BaseSchema):
    """Open ERP order awaiting fulfillment. Items are the raw stored payload."""

    order_number: str
    order_series: str = ""
    order_sequence: Optional[int] = None
    customer_code: str = ""
    customer_name: str = ""
    order_date: datetime
    delivery_date: Optional[datetime] = None
    items: Any = None

    @field_validator("order_date", "delivery_date", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)

    @field_validator("order_series", "customer_code", "customer_name", mode="before")
    @classmethod
    def none_to_blank(cls, value):
        return "" if value is None else value


# ===================
# CATALOG
# ===================

class CatalogProduct(BaseSchema):
    """Product card with per-warehouse on-hand quantities."""

    code: str
    name: str = ""
    unit: Optional[str] = None
    unit2: Optional[str] = None
    unit2_factor: float = 0
    vat_rate: float = 0
    image_url: Optional[str] = None
    active: bool = True
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    brand_code: Optional[str] = None
    warehouse_stocks: Any = None

    @field_validator("unit2_factor", "vat_rate", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)

    @field_validator("name", mode="before")
    @classmethod
    def none_to_blank(cls, value):
        return "" if value is None else value


# ===================
# WORKFLOW
# ===================

class WorkflowItem(BaseSchema):
    """Picking progress for one line of a workflow."""

    remaining_qty: float = 0
    picked_qty: float = 0

    @field_validator("remaining_qty", "picked_qty", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)

    @property
    def open_qty(self) -> float:
        return max(self.remaining_qty - self.picked_qty, 0)


class WorkflowState(BaseSchema):
    """Warehouse workflow of one order."""

    order_number: str
    stage: WorkflowStage = WorkflowStage.PENDING
    assigned_picker_id: Optional[str] = None
    last_action_at: Optional[datetime] = None
    items: list[WorkflowItem] = Field(default_factory=list)

    @field_validator("last_action_at", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)

    @field_validator("stage", mode="before")
    @classmethod
    def default_stage(cls, value):
        return value or WorkflowStage.PENDING


class Picker(BaseSchema):
    """Warehouse user that can be assigned to a workflow."""

    id: str
    display_name: Optional[str] = None
    erp_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def label(self) -> str:
        for candidate in (self.display_name, self.erp_name, self.name, self.email):
            if candidate:
                return candidate
        return self.id


# ===================
# CUSTOMERS
# ===================

class CustomerAccount(BaseSchema):
    """Customer user. Sub-accounts point at their parent."""

    id: str
    customer_code: Optional[str] = None
    display_name: Optional[str] = None
    name: Optional[str] = None
    sector_code: Optional[str] = None
    parent_customer_id: Optional[str] = None
    active: bool = True

    @property
    def is_top_level(self) -> bool:
        return not self.parent_customer_id

    @property
    def code(self) -> str:
        return self.customer_code or self.id

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.customer_code or self.id


class CustomerActivityEvent(BaseSchema):
    """Storefront event from the append-only activity log."""

    customer_id: str
    type: ActivityType
    created_at: datetime
    duration_seconds: float = 0
    click_count: float = 0

    @field_validator("created_at", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)

    @field_validator("duration_seconds", "click_count", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)


class LastActivity(BaseSchema):
    """Most recent activity timestamp of a customer, over the full log."""

    customer_id: str
    last_event_at: datetime

    @field_validator("last_event_at", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)


class CartLine(BaseSchema):
    """Line of a customer's current cart."""

    user_id: str
    quantity: float = 0
    unit_price: float = 0

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)


class CommerceOrder(BaseSchema):
    """Storefront order used for trailing commerce totals."""

    user_id: str
    status: str
    total_amount: float = 0
    created_at: datetime

    @field_validator("created_at", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)

    @field_validator("total_amount", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)


class ApprovalOrder(BaseSchema):
    """Storefront order waiting for credit approval."""

    id: str
    order_number: str
    user_id: str
    created_at: datetime
    total_amount: float = 0
    item_count: int = 0

    @field_validator("created_at", mode="after")
    @classmethod
    def as_utc(cls, value):
        return coerce_utc(value)

    @field_validator("total_amount", mode="before")
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)

    @field_validator("item_count", mode="before")
    @classmethod
    def count_or_zero(cls, value):
        return int(coerce_number(value))


class CreditPosition(BaseSchema):
    """Aged receivables of a top-level customer."""

    customer_id: str
    past_due_balance: float = 0
    not_due_balance: float = 0
    total_balance: float = 0
    classification: Optional[str] = None
    manual_risk_score: Optional[float] = None

    @field_validator(
        "past_due_balance", "not_due_balance", "total_balance", mode="before"
    )
    @classmethod
    def default_zero(cls, value):
        return coerce_number(value)
