"""
Pytest configuration and shared fixtures for all tests.

Every test gets its own local cache file and notifier, and remotes are
AsyncMock doubles unless a test builds an in-memory document collection.
"""
import pytest
import os
from unittest.mock import AsyncMock, MagicMock

from storage import local_store
from backend.app.services.notifications import Notifier
from backend.app.services.optimistic import OptimisticController


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Point the local cache at a per-test file."""
    cache_file = tmp_path / "local_cache.json"
    monkeypatch.setattr(local_store, "CACHE_FILE", str(cache_file))
    yield cache_file


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    os.environ["APP_ENV"] = "test"
    os.environ["LANGSMITH_TRACING"] = "0"  # Disable tracing in tests
    yield


@pytest.fixture
def test_notifier():
    return Notifier(history=20)


@pytest.fixture
def mock_remote():
    """Remote collection double; every call succeeds unless a test says otherwise."""
    remote = MagicMock()
    remote.name = "things"
    remote.list = AsyncMock(return_value=[])
    remote.create = AsyncMock(return_value={"id": "srv-42"})
    remote.update = AsyncMock(return_value=None)
    remote.delete = AsyncMock(return_value=None)
    return remote


@pytest.fixture
def make_controller(mock_remote, test_notifier):
    """Build a controller over `mock_remote`; pass overrides as keyword arguments."""
    def _make(entities=None, **kwargs):
        kwargs.setdefault("notifier", test_notifier)
        kwargs.setdefault("use_cache", False)
        controller = OptimisticController("things", kwargs.pop("remote", mock_remote), **kwargs)
        if entities:
            controller.collection.replace_all(entities)
        return controller
    return _make


@pytest.fixture
def sample_items():
    return [
        {"id": "i1", "name": "Espresso Beans", "description": "Dark roast 1kg", "sku": "ESP-001",
         "barcode": "4006381333931", "category_id": "c1", "current_quantity": 4, "low_stock_threshold": 5},
        {"id": "i2", "name": "Oat Milk", "description": "Barista edition", "sku": "OAT-002",
         "barcode": "5012345678900", "category_id": "c2", "current_quantity": 30},
        {"id": "i3", "name": "Paper Cups", "description": "12oz, sleeve of 50", "sku": "CUP-12",
         "barcode": None, "category_id": "c3", "current_quantity": 10},
        {"id": "i4", "name": "Decaf Beans", "description": None, "sku": "DEC-004",
         "barcode": "4006381333948", "category_id": "c1", "current_quantity": 25, "low_stock_threshold": 5},
    ]


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
