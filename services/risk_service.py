"""
Credit risk engine for pending-approval orders.

Scores each order against the customer's aged receivables and recommends
AUTO_APPROVE, MANUAL_REVIEW or BLOCK. A customer without a credit position
is a data gap and is penalised, never treated as zero exposure.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from config import settings
from config.intelligence import DAY_SECONDS, DEFAULT_RISK_WEIGHTS, RiskWeights
from models.risk import OrderRisk, RiskDecision, RiskSnapshot, RiskSummary
from models.snapshots import ApprovalOrder, CreditPosition, CustomerAccount
from services.customer_intent_service import build_parent_index
from services.operations_data_service import OperationsDataService, get_operations_data_service
from utils.number_utils import clamp, clamp_limit, non_negative, round_half_up, to_number
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

REASON_LOW_RISK = "Low risk signal"
REASON_NO_CREDIT = "No credit position on file, manual check required"


def classification_penalty(label: Optional[str], weights: RiskWeights = DEFAULT_RISK_WEIGHTS) -> float:
    """Extra points for a manual classification label; blocked beats watch."""
    upper = normalize_text(label).upper()
    if not upper:
        return 0
    if any(pattern in upper for pattern in weights.blocked_label_patterns):
        return weights.blocked_label_penalty
    if any(pattern in upper for pattern in weights.watch_label_patterns):
        return weights.watch_label_penalty
    return 0


def risk_score(
    order_amount: float,
    credit: Optional[CreditPosition],
    pending_days: int,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> int:
    past_due = non_negative(credit.past_due_balance) if credit else 0
    not_due = non_negative(credit.not_due_balance) if credit else 0
    total = _total_balance(credit)
    base = max(order_amount, 1)

    score = 0.0
    if past_due > 0:
        score += min(weights.past_due_cap, past_due / base * weights.past_due_ratio_weight + weights.past_due_base)
    if total > 0:
        score += min(weights.total_balance_cap, total / base * weights.total_balance_ratio_weight)
    if not_due > 0:
        score += min(weights.not_due_cap, not_due / base * weights.not_due_ratio_weight)
    if credit is None:
        score += weights.missing_credit_penalty
    if pending_days > weights.pending_days_grace:
        score += min(weights.pending_days_cap, pending_days)
    score += classification_penalty(credit.classification if credit else None, weights)

    if credit is not None and credit.manual_risk_score is not None:
        score = max(score, to_number(credit.manual_risk_score))

    return int(clamp(round_half_up(score), 0, 100))


def _total_balance(credit: Optional[CreditPosition]) -> float:
    """Stored total, or past-due + not-due when the total was never filled."""
    if credit is None:
        return 0
    if credit.total_balance:
        return non_negative(credit.total_balance)
    return non_negative(credit.past_due_balance) + non_negative(credit.not_due_balance)


def decide(
    score: int,
    past_due: float,
    order_amount: float,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> RiskDecision:
    block_floor = max(order_amount * weights.block_past_due_ratio, weights.block_past_due_floor)
    if score >= weights.block_score or past_due >= block_floor:
        return RiskDecision.BLOCK
    if score >= weights.review_score or past_due >= weights.review_past_due_floor:
        return RiskDecision.MANUAL_REVIEW
    return RiskDecision.AUTO_APPROVE


def risk_reasons(
    credit: Optional[CreditPosition],
    pending_days: int,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> list[str]:
    reasons = []
    past_due = non_negative(credit.past_due_balance) if credit else 0
    if past_due > 0:
        reasons.append(f"Past-due balance: {past_due:.2f}")
    if credit is None:
        reasons.append(REASON_NO_CREDIT)
    classification = normalize_text(credit.classification) if credit else ""
    if classification:
        reasons.append(f"Classification: {classification}")
    if pending_days > weights.pending_days_grace:
        reasons.append(f"Pending for {pending_days} days")
    return reasons or [REASON_LOW_RISK]


def score_order(
    order: ApprovalOrder,
    customer: Optional[CustomerAccount],
    credit: Optional[CreditPosition],
    now: datetime,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> OrderRisk:
    order_amount = non_negative(order.total_amount)
    pending_days = max(round_half_up((now - order.created_at).total_seconds() / DAY_SECONDS), 0)
    past_due = non_negative(credit.past_due_balance) if credit else 0
    score = risk_score(order_amount, credit, pending_days, weights)

    return OrderRisk(
        order_id=order.id,
        order_number=order.order_number,
        created_at=order.created_at,
        pending_days=pending_days,
        customer_id=order.user_id,
        customer_code=customer.code if customer else order.user_id,
        customer_name=customer.label if customer else order.user_id,
        order_amount=round(order_amount, 2),
        item_count=order.item_count,
        has_credit_position=credit is not None,
        past_due_balance=round(past_due, 2),
        not_due_balance=round(non_negative(credit.not_due_balance), 2) if credit else 0,
        total_balance=round(_total_balance(credit), 2),
        classification=normalize_text(credit.classification) or None if credit else None,
        manual_risk_score=credit.manual_risk_score if credit else None,
        risk_score=score,
        decision=decide(score, past_due, order_amount, weights),
        reasons=risk_reasons(credit, pending_days, weights),
    )


def compute_risk_snapshot(
    orders: Iterable[ApprovalOrder],
    customers: Iterable[CustomerAccount],
    credit_positions: Iterable[CreditPosition],
    now: datetime,
    weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
) -> RiskSnapshot:
    """
    Score orders and rank them by risk.

    Credit positions are held by top-level customers, so orders placed by a
    sub-account are checked against the parent's position.
    """
    customers = list(customers)
    parents = build_parent_index(customers)
    customers_by_id = {customer.id: customer for customer in customers}
    credit_by_customer = {normalize_text(c.customer_id): c for c in credit_positions}

    rows = []
    for order in orders:
        user_id = normalize_text(order.user_id)
        top_level_id = parents.get(user_id, user_id)
        rows.append(score_order(
            order,
            customers_by_id.get(user_id),
            credit_by_customer.get(top_level_id),
            now,
            weights,
        ))
    rows.sort(key=lambda row: (-row.risk_score, row.created_at))

    summary = RiskSummary(
        total_pending_orders=len(rows),
        total_pending_amount=round(sum(row.order_amount for row in rows), 2),
        auto_approve_count=sum(1 for r in rows if r.decision == RiskDecision.AUTO_APPROVE),
        manual_review_count=sum(1 for r in rows if r.decision == RiskDecision.MANUAL_REVIEW),
        block_count=sum(1 for r in rows if r.decision == RiskDecision.BLOCK),
    )
    return RiskSnapshot(summary=summary, orders=rows)


class RiskService:
    """Reads pending-approval orders and credit positions, then scores risk."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        weights: RiskWeights = DEFAULT_RISK_WEIGHTS,
    ):
        self.data = data or get_operations_data_service()
        self.weights = weights

    def get_snapshot(
        self,
        order_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> RiskSnapshot:
        now = now or datetime.now(timezone.utc)
        limit = clamp_limit(
            order_limit, settings.default_risk_order_limit, settings.limit_min, settings.limit_max
        )
        logger.info("computing_risk_snapshot", order_limit=limit)

        orders = self.data.get_pending_approval_orders(limit)
        customers = self.data.get_customers()
        parents = build_parent_index(customers)
        top_level_ids = sorted({
            parents.get(normalize_text(o.user_id), normalize_text(o.user_id)) for o in orders
        })
        credit_positions = self.data.get_credit_positions(top_level_ids)

        snapshot = compute_risk_snapshot(orders, customers, credit_positions, now, self.weights)

        logger.info(
            "risk_snapshot_complete",
            orders=snapshot.summary.total_pending_orders,
            auto_approve=snapshot.summary.auto_approve_count,
            manual_review=snapshot.summary.manual_review_count,
            block=snapshot.summary.block_count,
        )
        return snapshot


def get_risk_service() -> RiskService:
    """Create a RiskService on the default data source."""
    return RiskService()
