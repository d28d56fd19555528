"""
Unit tests for the command center aggregator.
"""

from datetime import timedelta

import pytest

from exceptions import DatabaseError
from models.command_center import SectionStatus
from models.snapshots import (
    CatalogProduct,
    CreditPosition,
    CustomerAccount,
    ApprovalOrder,
    PendingOrder,
    Picker,
    WorkflowStage,
    WorkflowState,
)
from services.command_center_service import CommandCenterService
from tests.factories import (
    ApprovalOrderFactory,
    CreditPositionFactory,
    CustomerFactory,
    PendingOrderFactory,
    ProductFactory,
    line,
)


@pytest.fixture
def populated_data(mock_data_service, now):
    """Data source with one short order, one picker, one customer and one risky order."""
    orders = [
        PendingOrder.model_validate(PendingOrderFactory.create(order_number="A-1", items=[line("P1", 10)])),
        PendingOrder.model_validate(PendingOrderFactory.create(order_number="A-2", items=[line("P2", 4)])),
    ]
    p1 = CatalogProduct.model_validate(ProductFactory.create(code="P1", category_id="CAT-1", warehouse_stocks={"1": 4}))
    p2 = CatalogProduct.model_validate(ProductFactory.create(code="P2", warehouse_stocks={"1": 10}))
    alt = CatalogProduct.model_validate(ProductFactory.create(code="ALT", category_id="CAT-1", warehouse_stocks={"1": 50}))

    def get_products(codes=None, category_ids=None, active_only=False):
        catalog = [p1, p2, alt]
        if codes is not None:
            return [p for p in catalog if p.code in codes]
        if category_ids is not None:
            return [p for p in catalog if p.category_id in category_ids]
        return catalog

    mock_data_service.get_open_orders.return_value = orders
    mock_data_service.get_products.side_effect = get_products
    mock_data_service.get_workflows.return_value = [
        WorkflowState(order_number="A-1", stage=WorkflowStage.PICKING, assigned_picker_id="u1"),
    ]
    mock_data_service.get_pickers.return_value = [Picker(id="u1", display_name="Picker One")]
    mock_data_service.get_customers.return_value = [
        CustomerAccount.model_validate(CustomerFactory.create(id="c1")),
    ]
    mock_data_service.get_pending_approval_orders.return_value = [
        ApprovalOrder.model_validate(ApprovalOrderFactory.create(user_id="c1", created_at=now - timedelta(hours=1))),
    ]
    mock_data_service.get_credit_positions.return_value = [
        CreditPosition.model_validate(CreditPositionFactory.create(customer_id="c1", past_due_balance=9000)),
    ]
    return mock_data_service


class TestCommandCenterService:
    """Tests for CommandCenterService.get_snapshot()."""

    def test_all_sections_ok(self, populated_data, now):
        snapshot = CommandCenterService(populated_data, max_workers=2).get_snapshot(now=now)

        assert snapshot.failed_sections == []
        for section in (snapshot.atp, snapshot.orchestration, snapshot.customer_intent,
                        snapshot.risk, snapshot.substitution, snapshot.data_quality):
            assert section.status == SectionStatus.OK

        summary = snapshot.summary
        assert summary.open_order_count == 2
        assert summary.low_coverage_order_count == 1
        assert summary.shortage_qty == 6
        assert summary.active_picker_count == 1
        assert summary.hot_customer_count == 0
        assert summary.high_risk_order_count == 1
        assert summary.substitution_need_count == 1
        assert summary.blocked_data_checks == 0

    def test_atp_computed_once(self, populated_data, now):
        CommandCenterService(populated_data).get_snapshot(now=now)

        # once for ATP, once for data quality
        assert populated_data.get_open_orders.call_count == 2

    def test_substitution_reuses_atp_shortages(self, populated_data, now):
        snapshot = CommandCenterService(populated_data).get_snapshot(now=now)

        suggestion = snapshot.substitution.data.suggestions[0]
        assert suggestion.source_product_code == "P1"
        assert suggestion.candidates[0].product_code == "ALT"

    def test_independent_failure_is_isolated(self, populated_data, now):
        populated_data.get_credit_positions.side_effect = DatabaseError("select", "timeout")

        snapshot = CommandCenterService(populated_data).get_snapshot(now=now)

        assert snapshot.failed_sections == ["risk"]
        assert snapshot.risk.status == SectionStatus.ERROR
        assert snapshot.risk.data is None
        assert snapshot.risk.error.code == "DATABASE_ERROR"
        assert snapshot.summary.high_risk_order_count == 0
        assert snapshot.atp.ok
        assert snapshot.summary.open_order_count == 2

    def test_atp_failure_marks_dependents_failed(self, populated_data, now):
        populated_data.get_workflows.side_effect = DatabaseError("select", "connection reset")

        snapshot = CommandCenterService(populated_data).get_snapshot(now=now)

        assert snapshot.failed_sections == ["atp", "orchestration", "substitution"]
        assert snapshot.orchestration.error.code == "SECTION_UNAVAILABLE"
        assert snapshot.orchestration.error.details["depends_on"] == "atp"
        assert snapshot.orchestration.error.details["cause"] == "DATABASE_ERROR"
        assert snapshot.customer_intent.ok
        assert snapshot.data_quality.ok
        assert snapshot.summary.open_order_count == 0
        assert snapshot.summary.substitution_need_count == 0

    def test_unexpected_error_becomes_internal_error(self, populated_data, now):
        populated_data.get_shelf_product_codes.side_effect = RuntimeError("boom")

        snapshot = CommandCenterService(populated_data).get_snapshot(now=now)

        assert snapshot.failed_sections == ["data_quality"]
        assert snapshot.data_quality.error.code == "INTERNAL_ERROR"
        assert snapshot.data_quality.error.message == "boom"

    def test_limits_passed_through(self, populated_data, now):
        CommandCenterService(populated_data).get_snapshot(order_limit=25, customer_limit=30, now=now)

        populated_data.get_pending_approval_orders.assert_called_once_with(25)

    def test_serializes_with_section_envelopes(self, populated_data, now):
        populated_data.get_credit_positions.side_effect = DatabaseError("select", "timeout")

        body = CommandCenterService(populated_data).get_snapshot(now=now).model_dump(mode="json")

        assert body["risk"]["status"] == "error"
        assert body["risk"]["data"] is None
        assert body["atp"]["status"] == "ok"
        assert body["atp"]["data"]["summary"]["total_orders"] == 2

    def test_generated_at_uses_reference_instant(self, populated_data, now):
        service = CommandCenterService(populated_data)

        first = service.get_snapshot(now=now)
        second = service.get_snapshot(now=now)

        assert first.generated_at == now
        assert first.model_dump() == second.model_dump()
