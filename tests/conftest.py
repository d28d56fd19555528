"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time; tests never talk to a real project
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timezone
from typing import Generator


FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    eq / in_ / gte filter the configured rows so reads can be checked
    against their filters; order() is ignored.
    """

    def __init__(self, data: list = None, count: int = None):
        self._data = data or []
        self._count = count
        self._range = None
        self._limit = None
        self.filters = []

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, list(values)))
        self._data = [row for row in self._data if row.get(column) in values]
        return self

    def gte(self, column, value):
        self.filters.append(("gte", column, value))
        self._data = [row for row in self._data if str(row.get(column)) >= value]
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        data = self._data
        if self._range is not None:
            start, end = self._range
            data = data[start:end + 1]
        if self._limit is not None:
            data = data[:self._limit]
        return MockSupabaseResponse(
            data=data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, error: Exception = None):
        self._data = data or []
        self._count = count
        self._error = error

    def select(self, *args, **kwargs):
        if self._error is not None:
            raise self._error
        return MockSupabaseQuery(list(self._data), self._count)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.requested_tables = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count, "error": None}

    def set_table_error(self, table_name: str, error: Exception):
        """Make every select on a table raise."""
        self._tables[table_name] = {"data": [], "count": None, "error": error}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        self.requested_tables.append(name)
        config = self._tables.get(name, {"data": [], "count": None, "error": None})
        return MockSupabaseTable(config["data"], config["count"], config["error"])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def now() -> datetime:
    """Fixed reference instant shared by engine tests."""
    return FIXED_NOW


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"code": "P1", "name": "Steel Screw", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.operations_data_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def mock_data_service() -> MagicMock:
    """OperationsDataService stand-in; configure return values per test."""
    from services.operations_data_service import OperationsDataService

    data = MagicMock(spec=OperationsDataService)
    data.get_open_orders.return_value = []
    data.get_workflows.return_value = []
    data.get_products.return_value = []
    data.get_shelf_product_codes.return_value = set()
    data.get_pickers.return_value = []
    data.get_customers.return_value = []
    data.get_activity_events.return_value = []
    data.get_last_activity.return_value = []
    data.get_cart_lines.return_value = []
    data.get_commerce_orders.return_value = []
    data.get_pending_approval_orders.return_value = []
    data.get_credit_positions.return_value = []
    return data


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/operations/atp")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
