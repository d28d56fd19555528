"""
Unit tests for the customer intent scorer.
"""

from datetime import timedelta

import pytest

from models.customer_intent import ChurnRisk, IntentSegment
from models.snapshots import (
    ActivityType,
    CartLine,
    CommerceOrder,
    CustomerAccount,
    CustomerActivityEvent,
    LastActivity,
)
from services.customer_intent_service import (
    ACTION_FAST_QUOTE,
    ACTION_OFFERS,
    ACTION_SAME_DAY,
    ACTION_STANDARD,
    ACTION_WIN_BACK,
    CustomerIntentService,
    build_parent_index,
    churn_risk,
    compute_customer_intent_snapshot,
    next_best_action,
    recency_score,
)
from tests.factories import CustomerFactory


def customer(**kwargs) -> CustomerAccount:
    return CustomerAccount.model_validate(CustomerFactory.create(**kwargs))


def event(customer_id, type, created_at, **kwargs) -> CustomerActivityEvent:
    return CustomerActivityEvent(customer_id=customer_id, type=type, created_at=created_at, **kwargs)


def commerce_order(user_id, amount, created_at, status="APPROVED") -> CommerceOrder:
    return CommerceOrder(user_id=user_id, status=status, total_amount=amount, created_at=created_at)


def score(customers, now, events=(), last_activity=(), cart_lines=(), orders=(), limit=80):
    return compute_customer_intent_snapshot(
        customers, events, last_activity, cart_lines, orders, now, limit
    )


# ===================
# SCORING RULES
# ===================

class TestRecencyScore:
    """Tests for recency_score()."""

    @pytest.mark.parametrize("days,expected", [
        (None, -10),
        (0, 18),
        (1, 18),
        (2, 10),
        (3, 10),
        (7, 4),
        (14, 0),
        (15, -12),
    ])
    def test_steps(self, days, expected):
        assert recency_score(days) == expected


class TestChurnRisk:
    """Tests for churn_risk()."""

    def test_long_silence_without_orders_is_high(self):
        assert churn_risk(30, 0) == ChurnRisk.HIGH

    def test_long_silence_with_orders_is_medium(self):
        assert churn_risk(30, 2) == ChurnRisk.MEDIUM

    def test_two_weeks_silence_is_medium(self):
        assert churn_risk(15, 0) == ChurnRisk.MEDIUM

    def test_recent_activity_is_low(self):
        assert churn_risk(3, 0) == ChurnRisk.LOW

    def test_no_activity_ever_is_low(self):
        assert churn_risk(None, 0) == ChurnRisk.LOW


class TestNextBestAction:
    """Tests for next_best_action()."""

    @pytest.mark.parametrize("segment,churn,cart,expected", [
        (IntentSegment.HOT, ChurnRisk.LOW, 100, ACTION_FAST_QUOTE),
        (IntentSegment.HOT, ChurnRisk.LOW, 0, ACTION_SAME_DAY),
        (IntentSegment.WARM, ChurnRisk.HIGH, 0, ACTION_OFFERS),
        (IntentSegment.COLD, ChurnRisk.HIGH, 0, ACTION_WIN_BACK),
        (IntentSegment.COLD, ChurnRisk.MEDIUM, 50, ACTION_STANDARD),
    ])
    def test_actions(self, segment, churn, cart, expected):
        assert next_best_action(segment, churn, cart) == expected


# ===================
# SNAPSHOT
# ===================

class TestComputeCustomerIntentSnapshot:
    """Tests for compute_customer_intent_snapshot()."""

    def test_orders_only_customer(self, now):
        """No activity ever, two approved orders worth 20,000 in 30 days."""
        acct = customer(id="c1")
        orders = [
            commerce_order("c1", 12000, now - timedelta(days=3)),
            commerce_order("c1", 8000, now - timedelta(days=10)),
        ]

        row = score([acct], now, orders=orders).customers[0]

        assert row.intent_score == 8  # -10 recency + 14 + 4 commerce
        assert row.intent_segment == IntentSegment.COLD
        assert row.churn_risk == ChurnRisk.LOW
        assert row.recency_days is None
        assert row.order_count_30d == 2
        assert row.order_amount_30d == 20000

    def test_engagement_weights(self, now):
        acct = customer(id="c1")
        recent = now - timedelta(hours=2)
        events = [
            event("c1", ActivityType.PAGE_VIEW, recent),
            event("c1", ActivityType.PAGE_VIEW, recent),
            event("c1", ActivityType.PRODUCT_VIEW, recent),
            event("c1", ActivityType.CART_ADD, recent),
            event("c1", ActivityType.SEARCH, recent),
            event("c1", ActivityType.ACTIVE_PING, recent, duration_seconds=600, click_count=50),
        ]

        row = score(
            [acct], now, events=events, last_activity=[LastActivity(customer_id="c1", last_event_at=recent)]
        ).customers[0]

        # 1.6 + 1.4 + 4 + 2 + 6 (10 min) + 2 (clicks) = 17, +18 recency
        assert row.intent_score == 35
        assert row.page_views == 2
        assert row.active_minutes == 10
        assert row.clicks == 50
        assert row.recency_days == 0

    def test_events_outside_window_ignored(self, now):
        acct = customer(id="c1")
        events = [event("c1", ActivityType.CART_ADD, now - timedelta(days=20))]

        row = score([acct], now, events=events).customers[0]

        assert row.cart_adds == 0

    def test_old_and_cancelled_orders_ignored(self, now):
        acct = customer(id="c1")
        orders = [
            commerce_order("c1", 5000, now - timedelta(days=45)),
            commerce_order("c1", 5000, now - timedelta(days=1), status="CANCELLED"),
        ]

        row = score([acct], now, orders=orders).customers[0]

        assert row.order_count_30d == 0

    def test_open_cart_bonus_and_hot_segment(self, now):
        acct = customer(id="c1")
        recent = now - timedelta(hours=1)
        events = [event("c1", ActivityType.CART_ADD, recent) for _ in range(10)]
        carts = [CartLine(user_id="c1", quantity=4, unit_price=25.5)]

        row = score(
            [acct], now, events=events, cart_lines=carts,
            last_activity=[LastActivity(customer_id="c1", last_event_at=recent)],
        ).customers[0]

        # 40 engagement + 12 cart bonus + 18 recency
        assert row.intent_score == 70
        assert row.intent_segment == IntentSegment.HOT
        assert row.cart_amount == 102
        assert row.next_best_action == ACTION_FAST_QUOTE

    def test_score_clamped(self, now):
        acct = customer(id="c1")
        recent = now - timedelta(hours=1)
        events = [event("c1", ActivityType.CART_ADD, recent) for _ in range(100)]

        row = score([acct], now, events=events).customers[0]

        assert row.intent_score == 100

    def test_never_negative(self, now):
        acct = customer(id="c1")
        stale = now - timedelta(days=60)

        row = score([acct], now, last_activity=[LastActivity(customer_id="c1", last_event_at=stale)]).customers[0]

        assert row.intent_score == 0
        assert row.churn_risk == ChurnRisk.HIGH
        assert row.next_best_action == ACTION_WIN_BACK

    def test_sub_accounts_roll_up_to_parent(self, now):
        parent = customer(id="parent")
        child = customer(id="child", parent_customer_id="parent")
        recent = now - timedelta(hours=1)

        snapshot = score(
            [parent, child],
            now,
            events=[event("child", ActivityType.CART_ADD, recent)],
            cart_lines=[CartLine(user_id="child", quantity=1, unit_price=10)],
            orders=[commerce_order("child", 5000, recent)],
        )

        assert [row.customer_id for row in snapshot.customers] == ["parent"]
        row = snapshot.customers[0]
        assert row.cart_adds == 1
        assert row.cart_amount == 10
        assert row.order_count_30d == 1

    def test_inactive_customers_skipped(self, now):
        snapshot = score([customer(id="off", active=False)], now)

        assert snapshot.summary.total_customers == 0

    def test_sorted_by_score_then_cart_amount(self, now):
        customers = [customer(id=c) for c in ("a", "b", "c")]
        recent = now - timedelta(hours=1)
        events = [event("c", ActivityType.CART_ADD, recent)]
        carts = [CartLine(user_id="a", quantity=1, unit_price=5), CartLine(user_id="b", quantity=1, unit_price=50)]

        snapshot = score(customers, now, events=events, cart_lines=carts)

        # c: 4 - 10 = 0 after clamp; a and b: 12 - 10 = 2
        assert [row.customer_id for row in snapshot.customers] == ["b", "a", "c"]

    def test_summary_covers_all_but_list_is_capped(self, now):
        customers = [customer() for _ in range(25)]

        snapshot = score(customers, now, limit=20)

        assert snapshot.summary.total_customers == 25
        assert snapshot.summary.cold_customers == 25
        assert len(snapshot.customers) == 20


class TestParentIndex:
    """Tests for build_parent_index()."""

    def test_top_level_maps_to_itself(self):
        index = build_parent_index([customer(id="p"), customer(id="s", parent_customer_id="p")])

        assert index == {"p": "p", "s": "p"}


# ===================
# SERVICE
# ===================

class TestCustomerIntentService:
    """Tests for CustomerIntentService with a mocked data source."""

    def test_reads_windows_from_now(self, mock_data_service, now):
        mock_data_service.get_customers.return_value = [customer(id="c1")]

        snapshot = CustomerIntentService(mock_data_service).get_snapshot(now=now)

        mock_data_service.get_activity_events.assert_called_once_with(now - timedelta(days=14))
        mock_data_service.get_commerce_orders.assert_called_once_with(
            now - timedelta(days=30), ["APPROVED", "PENDING"]
        )
        assert snapshot.summary.total_customers == 1

    def test_customer_limit_clamped(self, mock_data_service, now):
        mock_data_service.get_customers.return_value = [customer() for _ in range(30)]

        snapshot = CustomerIntentService(mock_data_service).get_snapshot(customer_limit=1, now=now)

        assert len(snapshot.customers) == 20
