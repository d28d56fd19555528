"""
Operations data source: read-only access to the collaborator tables.

Orders, catalog, workflow, activity, cart and credit data are owned by other
subsystems (ERP sync, storefront, warehouse workflow). This service only reads
them and parses rows into snapshot models. Reads are not taken in a single
transaction, so results are best-effort consistent.

No retries here: a failed read raises DatabaseError and fails the snapshot
that asked for it.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional, Type, TypeVar

import pydantic
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, InvalidSnapshotRowError
from models.base import BaseSchema
from models.snapshots import (
    ActivityType,
    ApprovalOrder,
    CartLine,
    CatalogProduct,
    CommerceOrder,
    CreditPosition,
    CustomerAccount,
    CustomerActivityEvent,
    LastActivity,
    PendingOrder,
    Picker,
    WorkflowState,
)
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseSchema)

PAGE_SIZE = 1000

SCORED_ACTIVITY_TYPES = [activity.value for activity in ActivityType]

PRODUCT_COLUMNS = (
    "code, name, unit, unit2, unit2_factor, vat_rate, image_url, active, "
    "category_id, category_name, brand_code, warehouse_stocks"
)


class OperationsDataService:
    """
    Read access to every table the intelligence engines consume.

    Holds nothing but the client; safe to share between threads.
    """

    def __init__(self, client=None):
        self.db = client or get_supabase_client()

    # ===================
    # HELPERS
    # ===================

    def _fetch_all(self, table: str, build: Callable) -> list[dict]:
        """
        Page through a query until a short page comes back.

        Supabase caps responses at 1000 rows, so unbounded reads
        (open orders, catalog) have to be paged.
        """
        rows: list[dict] = []
        offset = 0
        while True:
            query = build(self.db.table(table))
            result = query.range(offset, offset + PAGE_SIZE - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    def _read(self, operation: str, table: str, build: Callable, paged: bool = True) -> list[dict]:
        """Run a read, logging it and wrapping client failures in DatabaseError."""
        logger.debug("ops_read_start", operation=operation, table=table)
        try:
            if paged:
                rows = self._fetch_all(table, build)
            else:
                rows = build(self.db.table(table)).execute().data or []
        except Exception as e:
            logger.error(
                "ops_read_failed",
                operation=operation,
                table=table,
                error=str(e),
                error_type=type(e).__name__
            )
            raise DatabaseError("select", str(e), details={"table": table}) from e

        logger.debug("ops_read_complete", operation=operation, table=table, rows=len(rows))
        return rows

    @staticmethod
    def _parse(model: Type[ModelT], rows: Iterable[dict], table: str) -> list[ModelT]:
        try:
            return [model.model_validate(row) for row in rows]
        except pydantic.ValidationError as e:
            logger.error("ops_row_invalid", table=table, errors=e.error_count())
            raise InvalidSnapshotRowError(
                table,
                [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
            ) from e

    # ===================
    # ORDERS
    # ===================

    def get_open_orders(self) -> list[PendingOrder]:
        """
        Every open ERP order, oldest first.

        The whole set is returned because reservation accounting must see
        every active claim; window selection happens in the ATP engine.
        """
        rows = self._read(
            "get_open_orders",
            "pending_orders",
            lambda t: t.select(
                "order_number, order_series, order_sequence, customer_code, "
                "customer_name, order_date, delivery_date, items"
            ).order("order_date").order("order_number"),
        )
        return self._parse(PendingOrder, rows, "pending_orders")

    def get_workflows(self, order_numbers: list[str]) -> list[WorkflowState]:
        """Workflow state and per-line picking progress for the given orders."""
        if not order_numbers:
            return []

        rows = self._read(
            "get_workflows",
            "warehouse_workflows",
            lambda t: t.select(
                "order_number, status, assigned_picker_id, last_action_at, "
                "warehouse_workflow_items(remaining_qty, picked_qty)"
            ).in_("order_number", order_numbers),
        )
        return self._parse(
            WorkflowState,
            (
                {
                    "order_number": row.get("order_number"),
                    "stage": row.get("status"),
                    "assigned_picker_id": normalize_text(row.get("assigned_picker_id")) or None,
                    "last_action_at": row.get("last_action_at"),
                    "items": row.get("warehouse_workflow_items") or [],
                }
                for row in rows
            ),
            "warehouse_workflows",
        )

    def get_pending_approval_orders(self, limit: int) -> list[ApprovalOrder]:
        """Storefront orders awaiting approval, oldest first."""
        rows = self._read(
            "get_pending_approval_orders",
            "orders",
            lambda t: t.select(
                "id, order_number, user_id, created_at, total_amount, item_count"
            ).eq("status", "PENDING").order("created_at").order("order_number").limit(limit),
            paged=False,
        )
        return self._parse(ApprovalOrder, rows, "orders")

    def get_commerce_orders(self, since: datetime, statuses: list[str]) -> list[CommerceOrder]:
        """Storefront orders created since the given instant with one of the statuses."""
        rows = self._read(
            "get_commerce_orders",
            "orders",
            lambda t: t.select("user_id, status, total_amount, created_at")
            .gte("created_at", since.isoformat())
            .in_("status", statuses),
        )
        return self._parse(CommerceOrder, rows, "orders")

    # ===================
    # CATALOG
    # ===================

    def get_products(
        self,
        codes: Optional[list[str]] = None,
        category_ids: Optional[list[str]] = None,
        active_only: bool = False,
    ) -> list[CatalogProduct]:
        """
        Catalog products, optionally narrowed by code or category.

        An explicitly empty filter list means "nothing" and skips the read.
        """
        if codes is not None and not codes:
            return []
        if category_ids is not None and not category_ids:
            return []

        def build(table):
            query = table.select(PRODUCT_COLUMNS)
            if codes is not None:
                query = query.in_("code", codes)
            if category_ids is not None:
                query = query.in_("category_id", category_ids)
            if active_only:
                query = query.eq("active", True)
            return query.order("code")

        rows = self._read("get_products", "products", build)
        return self._parse(CatalogProduct, rows, "products")

    def get_shelf_product_codes(self) -> set[str]:
        """Product codes that have at least one shelf location."""
        rows = self._read(
            "get_shelf_product_codes",
            "shelf_locations",
            lambda t: t.select("product_code, shelf_code"),
        )
        return {
            normalize_text(row.get("product_code"))
            for row in rows
            if normalize_text(row.get("product_code")) and normalize_text(row.get("shelf_code"))
        }

    # ===================
    # USERS
    # ===================

    def get_pickers(self, user_ids: list[str]) -> list[Picker]:
        if not user_ids:
            return []
        rows = self._read(
            "get_pickers",
            "users",
            lambda t: t.select("id, display_name, erp_name, name, email").in_("id", user_ids),
            paged=False,
        )
        return self._parse(Picker, rows, "users")

    def get_customers(self) -> list[CustomerAccount]:
        """All customer accounts, sub-accounts and inactive ones included."""
        rows = self._read(
            "get_customers",
            "users",
            lambda t: t.select(
                "id, customer_code, display_name, name, sector_code, parent_customer_id, active"
            ).eq("role", "CUSTOMER").order("id"),
        )
        return self._parse(CustomerAccount, rows, "users")

    # ===================
    # ACTIVITY & CARTS
    # ===================

    def get_activity_events(self, since: datetime) -> list[CustomerActivityEvent]:
        """
        Attributed storefront events since the given instant.

        Only scored types are read; the log also holds CART_REMOVE, CLICK and
        whatever the clients add later.
        """
        rows = self._read(
            "get_activity_events",
            "customer_activity_events",
            lambda t: t.select("customer_id, type, created_at, duration_seconds, click_count")
            .gte("created_at", since.isoformat())
            .in_("type", SCORED_ACTIVITY_TYPES)
            .order("created_at"),
        )
        # Anonymous sessions have no customer and are not scored
        return self._parse(
            CustomerActivityEvent,
            (row for row in rows if normalize_text(row.get("customer_id"))),
            "customer_activity_events",
        )

    def get_last_activity(self) -> list[LastActivity]:
        """Latest event per customer over the full log (aggregating view)."""
        rows = self._read(
            "get_last_activity",
            "customer_last_activity",
            lambda t: t.select("customer_id, last_event_at"),
        )
        return self._parse(
            LastActivity,
            (row for row in rows if normalize_text(row.get("customer_id")) and row.get("last_event_at")),
            "customer_last_activity",
        )

    def get_cart_lines(self) -> list[CartLine]:
        rows = self._read(
            "get_cart_lines",
            "cart_items",
            lambda t: t.select("user_id, quantity, unit_price"),
        )
        return self._parse(CartLine, rows, "cart_items")

    # ===================
    # CREDIT
    # ===================

    def get_credit_positions(self, customer_ids: list[str]) -> list[CreditPosition]:
        """Credit positions for the given top-level customers."""
        if not customer_ids:
            return []
        rows = self._read(
            "get_credit_positions",
            "credit_positions",
            lambda t: t.select(
                "customer_id, past_due_balance, not_due_balance, total_balance, "
                "classification, manual_risk_score"
            ).in_("customer_id", customer_ids),
        )
        return self._parse(CreditPosition, rows, "credit_positions")


def get_operations_data_service() -> OperationsDataService:
    """Build a data source on the shared Supabase client."""
    return OperationsDataService()
