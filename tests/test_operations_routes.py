"""
API tests for the operations routes.

Services are patched at the route module; snapshots are real models built
from empty inputs so response_model validation runs.
"""

from unittest.mock import MagicMock, patch

import pytest

from exceptions import DatabaseError, InvalidSnapshotRowError
from services.atp_service import compute_atp_snapshot, get_atp_service
from services.command_center_service import CommandCenterService
from services.customer_intent_service import CustomerIntentService
from services.data_quality_service import compute_data_quality_snapshot
from services.orchestration_service import OrchestrationService
from services.risk_service import compute_risk_snapshot
from services.substitution_service import SubstitutionService


@pytest.fixture
def atp_service(now):
    service = MagicMock()
    service.get_snapshot.return_value = compute_atp_snapshot([], [], [], {}, now)
    with patch("routes.operations.get_atp_service", return_value=service):
        yield service


@pytest.fixture
def risk_service(now):
    service = MagicMock()
    service.get_snapshot.return_value = compute_risk_snapshot([], [], [], now)
    with patch("routes.operations.get_risk_service", return_value=service):
        yield service


class TestAtpRoute:
    """Tests for GET /api/operations/atp."""

    def test_returns_snapshot(self, test_client, atp_service):
        response = test_client.get("/api/operations/atp")

        assert response.status_code == 200
        assert response.json()["summary"]["total_orders"] == 0
        atp_service.get_snapshot.assert_called_once_with(series=None, order_limit=None)

    def test_series_repeated_and_comma_separated(self, test_client, atp_service):
        test_client.get("/api/operations/atp?series=A&series=B, C&series=")

        atp_service.get_snapshot.assert_called_once_with(series=["A", "B", "C"], order_limit=None)

    def test_raw_limit_passed_to_service(self, test_client, atp_service):
        response = test_client.get("/api/operations/atp?order_limit=lots")

        assert response.status_code == 200
        atp_service.get_snapshot.assert_called_once_with(series=None, order_limit="lots")


class TestErrorEnvelope:
    """Errors come back in the standard envelope."""

    def test_database_error(self, test_client, risk_service):
        risk_service.get_snapshot.side_effect = DatabaseError("select", "timeout", details={"table": "orders"})

        response = test_client.get("/api/operations/risk")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "DATABASE_ERROR"
        assert error["details"]["table"] == "orders"

    def test_unreadable_row_is_422(self, test_client, risk_service):
        risk_service.get_snapshot.side_effect = InvalidSnapshotRowError("orders", [])

        response = test_client.get("/api/operations/risk")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_SNAPSHOT_ROW"

    def test_unexpected_error_hidden(self, test_client, risk_service):
        risk_service.get_snapshot.side_effect = KeyError("secret")

        response = test_client.get("/api/operations/risk")

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
        }


class TestOtherRoutes:
    """Smoke tests for the remaining endpoints."""

    def test_risk_limit(self, test_client, risk_service):
        response = test_client.get("/api/operations/risk?order_limit=50")

        assert response.status_code == 200
        risk_service.get_snapshot.assert_called_once_with(order_limit="50")

    def test_data_quality(self, test_client):
        service = MagicMock()
        service.get_snapshot.return_value = compute_data_quality_snapshot([], set(), [])

        with patch("routes.operations.get_data_quality_service", return_value=service):
            response = test_client.get("/api/operations/data-quality")

        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["health_score"] == 100
        assert len(body["checks"]) == 8

    def test_command_center_partial_failure(self, test_client, mock_data_service, now):
        mock_data_service.get_customers.side_effect = DatabaseError("select", "timeout")
        service = CommandCenterService(mock_data_service)

        with patch("routes.operations.get_command_center_service", return_value=service):
            response = test_client.get("/api/operations/command-center?customer_limit=40")

        assert response.status_code == 200
        body = response.json()
        # customers feed both intent and risk
        assert body["failed_sections"] == ["customer_intent", "risk"]
        assert body["customer_intent"]["status"] == "error"
        assert body["customer_intent"]["error"]["code"] == "DATABASE_ERROR"
        assert body["atp"]["status"] == "ok"

    @pytest.mark.parametrize("path,target,service_class", [
        ("/api/operations/orchestration", "get_orchestration_service", OrchestrationService),
        ("/api/operations/substitution", "get_substitution_service", SubstitutionService),
        ("/api/operations/customer-intent", "get_customer_intent_service", CustomerIntentService),
    ])
    def test_empty_data_source(self, test_client, mock_data_service, path, target, service_class):
        service = service_class(mock_data_service)

        with patch(f"routes.operations.{target}", return_value=service):
            response = test_client.get(path)

        assert response.status_code == 200
        assert "summary" in response.json()


class TestServiceFactories:
    """Factories build a fresh service per call."""

    def test_no_shared_instance(self, mock_db):
        first = get_atp_service()
        second = get_atp_service()

        assert first is not second
        assert first.data.db is mock_db


class TestAppRoutes:
    """Tests for /health and /."""

    def test_health_healthy(self, test_client):
        status = {"status": "healthy", "tables": {"products": 3, "pending_orders": 1}}
        with patch("main.check_connection", return_value=status):
            response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"]["tables"]["products"] == 3

    def test_health_degraded(self, test_client):
        with patch("main.check_connection", return_value={"status": "unhealthy", "error": "down"}):
            response = test_client.get("/health")

        assert response.json()["status"] == "degraded"

    def test_root_lists_endpoints(self, test_client):
        response = test_client.get("/")

        endpoints = response.json()["endpoints"]
        assert endpoints["command_center"] == "/api/operations/command-center"
        assert endpoints["customer_intent"] == "/api/operations/customer-intent"
        assert len(endpoints) == 7
