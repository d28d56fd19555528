"""
Substitution engine.

For each ATP shortage line, rank in-stock products of the same category as
replacements. Score:
    35 if same brand
  + min(stock, 200) / 2
  + 0.2 x name similarity (0-100)
  + 5 if the candidate has an image
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional

import structlog

from config.intelligence import DEFAULT_SUBSTITUTION_WEIGHTS, SubstitutionWeights
from models.atp import AtpLine, AtpOrder, AtpSnapshot
from models.snapshots import CatalogProduct
from models.substitution import (
    SubstituteCandidate,
    SubstitutionSnapshot,
    SubstitutionSuggestion,
    SubstitutionSummary,
)
from services.atp_service import AtpService
from services.operations_data_service import OperationsDataService, get_operations_data_service
from services.pending_line_service import DEFAULT_UNIT, sum_stocks
from utils.number_utils import round_half_up
from utils.text_utils import name_similarity, normalize_text

logger = structlog.get_logger(__name__)


def collect_shortage_lines(
    atp: AtpSnapshot,
    max_lines: int,
) -> list[tuple[AtpOrder, AtpLine]]:
    """First max_lines lines with a shortage, in ATP priority order."""
    lines = [
        (order, line)
        for order in atp.orders
        for line in order.lines
        if line.shortage_qty > 0
    ]
    return lines[:max_lines]


def group_candidates_by_category(
    products: Iterable[CatalogProduct],
) -> dict[str, list[CatalogProduct]]:
    """Active products keyed by category id."""
    groups: dict[str, list[CatalogProduct]] = defaultdict(list)
    for product in products:
        category = normalize_text(product.category_id)
        if product.active and category:
            groups[category].append(product)
    return dict(groups)


def score_candidate(
    candidate: CatalogProduct,
    source_name: str,
    source_brand: str,
    weights: SubstitutionWeights = DEFAULT_SUBSTITUTION_WEIGHTS,
) -> SubstituteCandidate:
    stock_qty = sum_stocks(candidate.warehouse_stocks)
    same_brand = bool(source_brand) and normalize_text(candidate.brand_code) == source_brand
    similarity = name_similarity(source_name, candidate.name)
    unit = candidate.unit or DEFAULT_UNIT

    score = (
        (weights.same_brand_bonus if same_brand else 0)
        + min(stock_qty, weights.stock_cap) / weights.stock_divisor
        + similarity * weights.similarity_weight
        + (weights.image_bonus if candidate.image_url else 0)
    )

    reason_parts = []
    if same_brand:
        reason_parts.append("Same brand")
    if similarity >= weights.similarity_reason_threshold:
        reason_parts.append(f"Name similarity {similarity}%")
    reason_parts.append(f"Stock {round_half_up(stock_qty)} {unit}")

    return SubstituteCandidate(
        product_code=candidate.code,
        product_name=candidate.name,
        unit=unit,
        category_name=candidate.category_name,
        stock_qty=round(stock_qty, 2),
        score=round(score, 1),
        reason=" | ".join(reason_parts),
        image_url=candidate.image_url,
    )


def rank_candidates(
    line: AtpLine,
    source: Optional[CatalogProduct],
    candidates: Iterable[CatalogProduct],
    weights: SubstitutionWeights = DEFAULT_SUBSTITUTION_WEIGHTS,
) -> list[SubstituteCandidate]:
    """Top candidates for one line; the catalog card wins over line data."""
    source_code = normalize_text(line.product_code)
    source_name = (source.name if source and source.name else line.product_name)
    source_brand = normalize_text((source.brand_code if source else None) or line.brand_code)

    scored = [
        score_candidate(candidate, source_name, source_brand, weights)
        for candidate in candidates
        if normalize_text(candidate.code) != source_code
    ]
    scored = [candidate for candidate in scored if candidate.stock_qty > 0]
    scored.sort(key=lambda candidate: candidate.score, reverse=True)
    return scored[:weights.max_candidates]


def compute_substitution_snapshot(
    shortage_lines: list[tuple[AtpOrder, AtpLine]],
    source_products: Iterable[CatalogProduct],
    candidate_products: Iterable[CatalogProduct],
    weights: SubstitutionWeights = DEFAULT_SUBSTITUTION_WEIGHTS,
) -> SubstitutionSnapshot:
    sources = {normalize_text(product.code): product for product in source_products}
    by_category = group_candidates_by_category(candidate_products)

    suggestions = []
    for order, line in shortage_lines:
        candidates = rank_candidates(
            line,
            sources.get(normalize_text(line.product_code)),
            by_category.get(normalize_text(line.category_id), []),
            weights,
        )
        suggestions.append(SubstitutionSuggestion(
            order_number=order.order_number,
            customer_code=order.customer_code,
            customer_name=order.customer_name,
            line_key=line.line_key,
            source_product_code=line.product_code,
            source_product_name=line.product_name,
            category_name=line.category_name,
            needed_qty=line.remaining_qty,
            shortage_qty=line.shortage_qty,
            candidates=candidates,
        ))

    with_suggestion = sum(1 for row in suggestions if row.candidates)
    return SubstitutionSnapshot(
        summary=SubstitutionSummary(
            lines_needing_substitution=len(suggestions),
            lines_with_suggestion=with_suggestion,
            unresolved_lines=len(suggestions) - with_suggestion,
        ),
        suggestions=suggestions,
    )


class SubstitutionService:
    """Builds substitution suggestions, reusing an ATP result when given one."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        weights: SubstitutionWeights = DEFAULT_SUBSTITUTION_WEIGHTS,
    ):
        self.data = data or get_operations_data_service()
        self.weights = weights

    def get_snapshot(
        self,
        series: Optional[list[str]] = None,
        order_limit: Optional[int] = None,
        atp: Optional[AtpSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> SubstitutionSnapshot:
        if atp is None:
            atp = AtpService(self.data).get_snapshot(series=series, order_limit=order_limit, now=now)

        shortage_lines = collect_shortage_lines(atp, self.weights.max_lines)
        logger.info("computing_substitution_snapshot", shortage_lines=len(shortage_lines))

        if not shortage_lines:
            return compute_substitution_snapshot([], [], [], self.weights)

        source_codes = sorted({normalize_text(line.product_code) for _, line in shortage_lines})
        category_ids = sorted({
            normalize_text(line.category_id)
            for _, line in shortage_lines
            if normalize_text(line.category_id)
        })

        sources = self.data.get_products(codes=source_codes)
        candidates = self.data.get_products(category_ids=category_ids, active_only=True)

        snapshot = compute_substitution_snapshot(shortage_lines, sources, candidates, self.weights)

        logger.info(
            "substitution_snapshot_complete",
            lines=snapshot.summary.lines_needing_substitution,
            with_suggestion=snapshot.summary.lines_with_suggestion,
            unresolved=snapshot.summary.unresolved_lines,
        )
        return snapshot


def get_substitution_service() -> SubstitutionService:
    """Create a SubstitutionService on the default data source."""
    return SubstitutionService()
