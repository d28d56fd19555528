"""
Customer intent scorer.

Scores every active top-level customer on three axes:
- engagement: weighted storefront activity over the last 14 days
- commerce: orders in the last 30 days plus an open-cart bonus
- recency: days since the last recorded activity

Sub-account activity, carts and orders roll up to the parent customer.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import structlog

from config import settings
from config.intelligence import DAY_SECONDS, DEFAULT_INTENT_WEIGHTS, IntentWeights
from models.customer_intent import (
    ChurnRisk,
    CustomerIntent,
    CustomerIntentSnapshot,
    CustomerIntentSummary,
    IntentSegment,
)
from models.snapshots import (
    ActivityType,
    CartLine,
    CommerceOrder,
    CustomerAccount,
    CustomerActivityEvent,
    LastActivity,
)
from services.operations_data_service import OperationsDataService, get_operations_data_service
from utils.number_utils import clamp, clamp_limit, non_negative, round_half_up
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

COMMERCE_STATUSES = ["APPROVED", "PENDING"]

ACTION_FAST_QUOTE = "Push a fast quote toward the open cart"
ACTION_SAME_DAY = "Schedule same-day outreach"
ACTION_OFFERS = "Surface substitute and complementary offers"
ACTION_WIN_BACK = "Run a win-back campaign"
ACTION_STANDARD = "Standard follow-up"


@dataclass
class ActivityTotals:
    counts: Counter
    active_seconds: float = 0
    clicks: float = 0


@dataclass
class CartTotals:
    items: float = 0
    amount: float = 0


@dataclass
class CommerceTotals:
    order_count: int = 0
    order_amount: float = 0


# ===================
# GROUP-BY PASSES
# ===================

def build_parent_index(customers: Iterable[CustomerAccount]) -> dict[str, str]:
    """Map every account id to its top-level customer id."""
    return {
        customer.id: normalize_text(customer.parent_customer_id) or customer.id
        for customer in customers
    }


def _top_level(user_id: str, parents: dict[str, str]) -> str:
    user_id = normalize_text(user_id)
    return parents.get(user_id, user_id)


def aggregate_activity(
    events: Iterable[CustomerActivityEvent],
    parents: dict[str, str],
    since: datetime,
) -> dict[str, ActivityTotals]:
    totals: dict[str, ActivityTotals] = defaultdict(lambda: ActivityTotals(counts=Counter()))
    for event in events:
        if event.created_at < since:
            continue
        bucket = totals[_top_level(event.customer_id, parents)]
        bucket.counts[event.type] += 1
        if event.type == ActivityType.ACTIVE_PING:
            bucket.active_seconds += non_negative(event.duration_seconds)
            bucket.clicks += non_negative(event.click_count)
    return dict(totals)


def aggregate_last_activity(
    rows: Iterable[LastActivity],
    parents: dict[str, str],
) -> dict[str, datetime]:
    latest: dict[str, datetime] = {}
    for row in rows:
        customer_id = _top_level(row.customer_id, parents)
        if customer_id not in latest or row.last_event_at > latest[customer_id]:
            latest[customer_id] = row.last_event_at
    return latest


def aggregate_carts(lines: Iterable[CartLine], parents: dict[str, str]) -> dict[str, CartTotals]:
    totals: dict[str, CartTotals] = defaultdict(CartTotals)
    for line in lines:
        if not normalize_text(line.user_id):
            continue
        bucket = totals[_top_level(line.user_id, parents)]
        quantity = non_negative(line.quantity)
        bucket.items += quantity
        bucket.amount += quantity * non_negative(line.unit_price)
    return dict(totals)


def aggregate_commerce(
    orders: Iterable[CommerceOrder],
    parents: dict[str, str],
    since: datetime,
) -> dict[str, CommerceTotals]:
    totals: dict[str, CommerceTotals] = defaultdict(CommerceTotals)
    for order in orders:
        if order.created_at < since or order.status not in COMMERCE_STATUSES:
            continue
        bucket = totals[_top_level(order.user_id, parents)]
        bucket.order_count += 1
        bucket.order_amount += non_negative(order.total_amount)
    return dict(totals)


# ===================
# SCORING
# ===================

def engagement_score(activity: ActivityTotals, weights: IntentWeights = DEFAULT_INTENT_WEIGHTS) -> float:
    counts = activity.counts
    return (
        counts[ActivityType.PAGE_VIEW] * weights.page_view
        + counts[ActivityType.PRODUCT_VIEW] * weights.product_view
        + counts[ActivityType.CART_ADD] * weights.cart_add
        + counts[ActivityType.CART_UPDATE] * weights.cart_update
        + counts[ActivityType.SEARCH] * weights.search
        + round_half_up(activity.active_seconds / 60) * weights.active_minute
        + activity.clicks * weights.click
    )


def commerce_score(
    commerce: CommerceTotals,
    cart_amount: float,
    weights: IntentWeights = DEFAULT_INTENT_WEIGHTS,
) -> float:
    return (
        commerce.order_count * weights.order_count
        + commerce.order_amount / weights.order_amount_divisor
        + (weights.open_cart_bonus if cart_amount > 0 else 0)
    )


def recency_score(recency_days: Optional[int], weights: IntentWeights = DEFAULT_INTENT_WEIGHTS) -> float:
    if recency_days is None:
        return weights.recency_never
    for max_days, score in weights.recency_steps:
        if recency_days <= max_days:
            return score
    return weights.recency_stale


def intent_segment(score: int, weights: IntentWeights = DEFAULT_INTENT_WEIGHTS) -> IntentSegment:
    if score >= weights.hot_threshold:
        return IntentSegment.HOT
    if score >= weights.warm_threshold:
        return IntentSegment.WARM
    return IntentSegment.COLD


def churn_risk(
    recency_days: Optional[int],
    order_count_30d: int,
    weights: IntentWeights = DEFAULT_INTENT_WEIGHTS,
) -> ChurnRisk:
    """Customers with no recorded activity at all are not flagged."""
    if recency_days is None:
        return ChurnRisk.LOW
    if recency_days > weights.churn_high_days and order_count_30d == 0:
        return ChurnRisk.HIGH
    if recency_days > weights.churn_medium_days:
        return ChurnRisk.MEDIUM
    return ChurnRisk.LOW


def next_best_action(segment: IntentSegment, churn: ChurnRisk, cart_amount: float) -> str:
    if segment == IntentSegment.HOT and cart_amount > 0:
        return ACTION_FAST_QUOTE
    if segment == IntentSegment.HOT:
        return ACTION_SAME_DAY
    if segment == IntentSegment.WARM:
        return ACTION_OFFERS
    if churn == ChurnRisk.HIGH:
        return ACTION_WIN_BACK
    return ACTION_STANDARD


def score_customer(
    customer: CustomerAccount,
    activity: ActivityTotals,
    last_event_at: Optional[datetime],
    cart: CartTotals,
    commerce: CommerceTotals,
    now: datetime,
    weights: IntentWeights = DEFAULT_INTENT_WEIGHTS,
) -> CustomerIntent:
    recency_days = None
    if last_event_at is not None:
        recency_days = max(round_half_up((now - last_event_at).total_seconds() / DAY_SECONDS), 0)

    score = int(clamp(
        round_half_up(
            engagement_score(activity, weights)
            + commerce_score(commerce, cart.amount, weights)
            + recency_score(recency_days, weights)
        ),
        0,
        100,
    ))
    segment = intent_segment(score, weights)
    churn = churn_risk(recency_days, commerce.order_count, weights)
    counts = activity.counts

    return CustomerIntent(
        customer_id=customer.id,
        customer_code=customer.code,
        customer_name=customer.label,
        sector_code=customer.sector_code,
        intent_score=score,
        intent_segment=segment,
        churn_risk=churn,
        recency_days=recency_days,
        page_views=counts[ActivityType.PAGE_VIEW],
        product_views=counts[ActivityType.PRODUCT_VIEW],
        cart_adds=counts[ActivityType.CART_ADD],
        cart_updates=counts[ActivityType.CART_UPDATE],
        searches=counts[ActivityType.SEARCH],
        active_minutes=round_half_up(activity.active_seconds / 60),
        clicks=round_half_up(activity.clicks),
        cart_items=cart.items,
        cart_amount=round(cart.amount, 2),
        order_count_30d=commerce.order_count,
        order_amount_30d=round(commerce.order_amount, 2),
        next_best_action=next_best_action(segment, churn, cart.amount),
    )


def compute_customer_intent_snapshot(
    customers: Iterable[CustomerAccount],
    events: Iterable[CustomerActivityEvent],
    last_activity: Iterable[LastActivity],
    cart_lines: Iterable[CartLine],
    commerce_orders: Iterable[CommerceOrder],
    now: datetime,
    customer_limit: int,
    weights: IntentWeights = DEFAULT_INTENT_WEIGHTS,
) -> CustomerIntentSnapshot:
    """
    Score customers and rank them.

    Summary counts cover every scored customer; the returned list is capped
    at customer_limit.
    """
    customers = list(customers)
    parents = build_parent_index(customers)

    activity = aggregate_activity(
        events, parents, now - timedelta(days=weights.activity_window_days)
    )
    latest = aggregate_last_activity(last_activity, parents)
    carts = aggregate_carts(cart_lines, parents)
    commerce = aggregate_commerce(
        commerce_orders, parents, now - timedelta(days=weights.commerce_window_days)
    )

    rows = [
        score_customer(
            customer,
            activity.get(customer.id, ActivityTotals(counts=Counter())),
            latest.get(customer.id),
            carts.get(customer.id, CartTotals()),
            commerce.get(customer.id, CommerceTotals()),
            now,
            weights,
        )
        for customer in customers
        if customer.active and customer.is_top_level
    ]
    rows.sort(key=lambda row: (-row.intent_score, -row.cart_amount))

    summary = CustomerIntentSummary(
        total_customers=len(rows),
        hot_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.HOT),
        warm_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.WARM),
        cold_customers=sum(1 for r in rows if r.intent_segment == IntentSegment.COLD),
        high_churn_risk_customers=sum(1 for r in rows if r.churn_risk == ChurnRisk.HIGH),
    )
    return CustomerIntentSnapshot(summary=summary, customers=rows[:customer_limit])


class CustomerIntentService:
    """Reads customers, activity, carts and orders, then scores intent."""

    def __init__(
        self,
        data: Optional[OperationsDataService] = None,
        weights: IntentWeights = DEFAULT_INTENT_WEIGHTS,
    ):
        self.data = data or get_operations_data_service()
        self.weights = weights

    def get_snapshot(
        self,
        customer_limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CustomerIntentSnapshot:
        now = now or datetime.now(timezone.utc)
        limit = clamp_limit(
            customer_limit, settings.default_customer_limit, settings.limit_min, settings.limit_max
        )
        logger.info("computing_customer_intent_snapshot", customer_limit=limit)

        customers = self.data.get_customers()
        events = self.data.get_activity_events(
            now - timedelta(days=self.weights.activity_window_days)
        )
        last_activity = self.data.get_last_activity()
        cart_lines = self.data.get_cart_lines()
        commerce_orders = self.data.get_commerce_orders(
            now - timedelta(days=self.weights.commerce_window_days), COMMERCE_STATUSES
        )

        snapshot = compute_customer_intent_snapshot(
            customers, events, last_activity, cart_lines, commerce_orders, now, limit, self.weights
        )

        logger.info(
            "customer_intent_snapshot_complete",
            customers=snapshot.summary.total_customers,
            hot=snapshot.summary.hot_customers,
            warm=snapshot.summary.warm_customers,
            high_churn=snapshot.summary.high_churn_risk_customers,
        )
        return snapshot


def get_customer_intent_service() -> CustomerIntentService:
    """Create a CustomerIntentService on the default data source."""
    return CustomerIntentService()
