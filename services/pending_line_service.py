"""
Pending-line normalizer and stock lookups.

Open ERP orders store their lines as a JSON payload whose shape drifted over
time (missing quantities, missing codes, warehouse as text or number). Every
engine that reads open orders goes through parse_pending_lines() so they all
see the same canonical OrderLine records.
"""

import re
from collections import defaultdict
from typing import Any, Iterable, Optional

from models.snapshots import OrderLine, PendingOrder
from utils.number_utils import non_negative, to_number
from utils.text_utils import normalize_text, optional_text

DEFAULT_UNIT = "ADET"
UNKNOWN_CODE_PREFIX = "UNKNOWN"

_DIGITS = re.compile(r"\d+")


def parse_pending_lines(items: Any, include_completed: bool = False) -> list[OrderLine]:
    """
    Normalize a stored line payload.

    Args:
        items: Raw payload, expected to be a list of dicts
        include_completed: Keep lines with nothing left to deliver. Reservation
            accounting needs these because a delivered-looking line can still
            hold an active claim.

    Returns:
        Canonical lines in payload order
    """
    if not isinstance(items, list):
        return []

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raw = {}

        product_code = normalize_text(raw.get("productCode", raw.get("product_code")))
        if not product_code:
            product_code = f"{UNKNOWN_CODE_PREFIX}-{index + 1}"

        row_value = raw.get("rowNumber", raw.get("row_number"))
        row_number = int(to_number(row_value)) if row_value not in (None, "") else index + 1

        lines.append(OrderLine(
            line_key=f"{product_code}#{row_number}",
            row_number=row_number,
            product_code=product_code,
            product_name=normalize_text(raw.get("productName", raw.get("product_name"))) or product_code,
            unit=normalize_text(raw.get("unit")) or DEFAULT_UNIT,
            remaining_qty=non_negative(raw.get("remainingQty", raw.get("remaining_qty"))),
            reserved_qty=non_negative(raw.get("reservedQty", raw.get("reserved_qty"))),
            reserved_delivered_qty=non_negative(
                raw.get("reservedDeliveredQty", raw.get("reserved_delivered_qty"))
            ),
            warehouse_code=optional_text(raw.get("warehouseCode", raw.get("warehouse_code"))),
        ))

    if include_completed:
        return lines
    return [line for line in lines if line.remaining_qty > 0]


def build_reservation_index(orders: Iterable[PendingOrder]) -> dict[str, float]:
    """
    Total active reservation per product code across the given orders.

    Must be fed every open order, not a filtered page: a paged window would
    miss claims held outside it and overstate availability.
    """
    reserved: dict[str, float] = defaultdict(float)
    for order in orders:
        for line in parse_pending_lines(order.items, include_completed=True):
            if line.own_reserved_qty > 0:
                reserved[line.product_code] += line.own_reserved_qty
    return dict(reserved)


def sum_stocks(warehouse_stocks: Any) -> float:
    """On-hand across all warehouses; negatives and junk count as zero."""
    if not isinstance(warehouse_stocks, dict):
        return 0.0
    return sum(non_negative(value) for value in warehouse_stocks.values())


def stock_for_warehouse(warehouse_stocks: Any, warehouse_code: Optional[str]) -> float:
    """
    On-hand in the line's warehouse.

    Stock keys come from the ERP as either the bare number ("1") or a
    labelled name ("DEPO 1"), so a key also matches when its first digit run
    equals the code. Without a code, or when nothing matches, the total
    across warehouses is used.
    """
    if not warehouse_code:
        return sum_stocks(warehouse_stocks)
    if not isinstance(warehouse_stocks, dict):
        return 0.0

    target = normalize_text(warehouse_code)
    for key, value in warehouse_stocks.items():
        normalized_key = normalize_text(key)
        if not normalized_key:
            continue
        if normalized_key == target:
            return non_negative(value)
        digits = _DIGITS.search(normalized_key)
        if digits and digits.group(0) == target:
            return non_negative(value)

    return sum_stocks(warehouse_stocks)
