"""
Catalog data-quality checks.

A fixed battery of independent rules over active products, shelf locations
and every open-order line (completed ones included, to catch reservation
drift). Blocking rules flag master data that breaks pricing, packing or
fulfillment; the rest degrade speed or presentation.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import structlog

from config.intelligence import DEFAULT_DATA_QUALITY_CONFIG, DataQualityConfig
from models.data_quality import (
    DataQualityCheck,
    DataQualitySnapshot,
    DataQualitySummary,
    QualitySample,
    Severity,
)
from models.snapshots import CatalogProduct, PendingOrder
from services.operations_data_service import OperationsDataService, get_operations_data_service
from services.pending_line_service import parse_pending_lines, sum_stocks
from utils.number_utils import clamp, round_half_up, to_number
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

_NUMERIC_NAME = re.compile(r"^[0-9\s\-_.]+$")


@dataclass(frozen=True)
class CheckRule:
    """Static definition of one check."""
    code: str
    title: str
    severity: Severity
    blocking: bool
    description: str


MISSING_IMAGE = CheckRule(
    "MISSING_IMAGE", "Missing product image", Severity.MEDIUM, False,
    "Product card has no image.",
)
INVALID_VAT_RATE = CheckRule(
    "INVALID_VAT_RATE", "Invalid VAT rate", Severity.CRITICAL, True,
    "VAT rate outside (0, 0.3] breaks document and price calculations.",
)
INVALID_UNIT2_FACTOR = CheckRule(
    "INVALID_UNIT2_FACTOR", "Invalid secondary unit factor", Severity.HIGH, True,
    "Secondary unit is set but its conversion factor is missing.",
)
MISSING_PRIMARY_UNIT = CheckRule(
    "MISSING_PRIMARY_UNIT", "Missing primary unit", Severity.HIGH, True,
    "Product primary unit is empty.",
)
MISSING_SHELF_WITH_STOCK = CheckRule(
    "MISSING_SHELF_WITH_STOCK", "In-stock product without shelf location", Severity.MEDIUM, False,
    "Pickers have to search for the product.",
)
UNKNOWN_PENDING_PRODUCT = CheckRule(
    "UNKNOWN_PENDING_PRODUCT", "Open order references unknown product", Severity.CRITICAL, True,
    "Open order line has no matching product card.",
)
RESERVE_MISMATCH = CheckRule(
    "RESERVE_MISMATCH", "Reservation exceeds remaining quantity", Severity.HIGH, True,
    "Reservation accounting has drifted.",
)
SUSPICIOUS_PRODUCT_NAME = CheckRule(
    "SUSPICIOUS_PRODUCT_NAME", "Suspicious product name", Severity.LOW, False,
    "Product name is too short or meaningless.",
)


# ===================
# PRODUCT RULES
# ===================

def has_invalid_vat(product: CatalogProduct, config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG) -> bool:
    vat = to_number(product.vat_rate)
    return vat <= 0 or vat > config.max_vat_rate


def has_invalid_unit2_factor(product: CatalogProduct) -> bool:
    return bool(normalize_text(product.unit2)) and to_number(product.unit2_factor) <= 0


def is_missing_shelf(product: CatalogProduct, shelf_codes: set[str]) -> bool:
    return sum_stocks(product.warehouse_stocks) > 0 and normalize_text(product.code) not in shelf_codes


def is_suspicious_name(name: Optional[str], config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG) -> bool:
    """Empty, shorter than min_name_length, or digits and punctuation only."""
    text = normalize_text(name)
    return not text or len(text) < config.min_name_length or bool(_NUMERIC_NAME.match(text))


def _product_samples(
    products: list[CatalogProduct],
    detail: Callable[[CatalogProduct], str],
    size: int,
) -> list[QualitySample]:
    return [
        QualitySample(code=product.code, name=product.name, detail=detail(product))
        for product in products[:size]
    ]


# ===================
# ORDER-LINE RULES
# ===================

def scan_pending_lines(
    pending_orders: Iterable[PendingOrder],
    catalog_codes: set[str],
    config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG,
) -> tuple[list[QualitySample], list[QualitySample]]:
    """
    One pass over every open-order line.

    Returns:
        (unknown product lines, reservation mismatch lines), uncapped
    """
    unknown: list[QualitySample] = []
    mismatched: list[QualitySample] = []
    for order in pending_orders:
        for line in parse_pending_lines(order.items, include_completed=True):
            if line.product_code not in catalog_codes:
                unknown.append(QualitySample(
                    code=line.product_code,
                    name=line.product_name,
                    detail=f"Order: {order.order_number}",
                ))
            active_reserve = line.own_reserved_qty
            if active_reserve > line.remaining_qty + config.reserve_tolerance:
                mismatched.append(QualitySample(
                    code=line.product_code,
                    name=line.product_name,
                    detail=(
                        f"Order: {order.order_number} | "
                        f"Reserved {active_reserve:g} > Remaining {line.remaining_qty:g}"
                    ),
                ))
    return unknown, mismatched


def _check(rule: CheckRule, count: int, sample: list[QualitySample]) -> DataQualityCheck:
    return DataQualityCheck(
        code=rule.code,
        title=rule.title,
        severity=rule.severity,
        blocking=rule.blocking,
        blocked=rule.blocking and count > 0,
        count=count,
        description=rule.description,
        sample=sample,
    )


def health_score(checks: Iterable[DataQualityCheck], config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG) -> int:
    penalty = sum(
        min(check.count, config.count_cap) * config.severity_weights[check.severity.value]
        for check in checks
    )
    return int(clamp(round_half_up(100 - penalty / 2), 0, 100))


def compute_data_quality_snapshot(
    products: Iterable[CatalogProduct],
    shelf_codes: set[str],
    pending_orders: Iterable[PendingOrder],
    config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG,
) -> DataQualitySnapshot:
    """
    Run every check and score catalog health.

    Args:
        products: Active catalog products
        shelf_codes: Product codes with a shelf location
        pending_orders: Every open order
    """
    products = list(products)
    catalog_codes = {normalize_text(product.code) for product in products}
    size = config.sample_size

    missing_image = [p for p in products if not normalize_text(p.image_url)]
    invalid_vat = [p for p in products if has_invalid_vat(p, config)]
    invalid_unit2 = [p for p in products if has_invalid_unit2_factor(p)]
    missing_unit = [p for p in products if not normalize_text(p.unit)]
    missing_shelf = [p for p in products if is_missing_shelf(p, shelf_codes)]
    suspicious = [p for p in products if is_suspicious_name(p.name, config)]
    unknown_lines, mismatched_lines = scan_pending_lines(pending_orders, catalog_codes, config)

    checks = [
        _check(MISSING_IMAGE, len(missing_image), _product_samples(
            missing_image, lambda p: "No product image", size
        )),
        _check(INVALID_VAT_RATE, len(invalid_vat), _product_samples(
            invalid_vat, lambda p: f"VAT: {to_number(p.vat_rate):.4f}", size
        )),
        _check(INVALID_UNIT2_FACTOR, len(invalid_unit2), _product_samples(
            invalid_unit2, lambda p: f"Factor: {to_number(p.unit2_factor):g}", size
        )),
        _check(MISSING_PRIMARY_UNIT, len(missing_unit), _product_samples(
            missing_unit, lambda p: "Unit is empty", size
        )),
        _check(MISSING_SHELF_WITH_STOCK, len(missing_shelf), _product_samples(
            missing_shelf, lambda p: f"Stock: {sum_stocks(p.warehouse_stocks):.2f}", size
        )),
        _check(UNKNOWN_PENDING_PRODUCT, len(unknown_lines), unknown_lines[:size]),
        _check(RESERVE_MISMATCH, len(mismatched_lines), mismatched_lines[:size]),
        _check(SUSPICIOUS_PRODUCT_NAME, len(suspicious), _product_samples(
            suspicious, lambda p: "Master data cleanup recommended", size
        )),
    ]

    summary = DataQualitySummary(
        total_issues=sum(check.count for check in checks),
        blocked_checks=sum(1 for check in checks if check.blocked),
        health_score=health_score(checks, config),
    )
    return DataQualitySnapshot(summary=summary, checks=checks)


class DataQualityService:
    """Reads catalog, shelf locations and open orders, then runs the checks."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        config: DataQualityConfig = DEFAULT_DATA_QUALITY_CONFIG,
    ):
        self.data = data or get_operations_data_service()
        self.config = config

    def get_snapshot(self) -> DataQualitySnapshot:
        logger.info("computing_data_quality_snapshot")

        products = self.data.get_products(active_only=True)
        shelf_codes = self.data.get_shelf_product_codes()
        pending_orders = self.data.get_open_orders()

        snapshot = compute_data_quality_snapshot(products, shelf_codes, pending_orders, self.config)

        logger.info(
            "data_quality_snapshot_complete",
            total_issues=snapshot.summary.total_issues,
            blocked_checks=snapshot.summary.blocked_checks,
            health_score=snapshot.summary.health_score,
        )
        return snapshot


def get_data_quality_service() -> DataQualityService:
    """Create a DataQualityService on the default data source."""
    return DataQualityService()
