"""Pytest configuration and fixtures for rentroll-nlq tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from rentroll_nlq.models.query import ExecutionResult
from rentroll_nlq.services.ai_client import AIClient


# Markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running tests"
    )


def pytest_collection_modifyitems(config, items):
    """Run integration tests last."""
    items.sort(key=lambda item: (item.get_closest_marker("integration") is not None, item.name))


VACANT_UNITS_SQL = "SELECT * FROM units WHERE status='vacant' LIMIT 100"

SAMPLE_ROWS = [
    {"Property": "Maple Court", "Unit": "101", "Status": "vacant", "Rent": 1450},
    {"Property": "Maple Court", "Unit": "204", "Status": "vacant", "Rent": 1525},
]


def make_engine(bytes_projected: int = 1024, rows=None, bytes_processed: int = 2048) -> MagicMock:
    """Data engine stub with awaitable estimate/execute."""
    engine = MagicMock()
    engine.estimate = AsyncMock(return_value=bytes_projected)
    engine.execute = AsyncMock(return_value=ExecutionResult(
        rows=list(SAMPLE_ROWS if rows is None else rows),
        bytes_processed=bytes_processed,
        elapsed_ms=12
    ))
    engine.close = AsyncMock()
    return engine


@pytest.fixture
def engine() -> MagicMock:
    return make_engine()


@pytest.fixture
def ai_client() -> AsyncMock:
    """Text generation client stub."""
    return AsyncMock(spec=AIClient)


@pytest.fixture
def engine_factory():
    """Build engine stubs with custom estimates or rows."""
    return make_engine


@pytest.fixture
def vacant_units_sql() -> str:
    return VACANT_UNITS_SQL
