"""Shared pytest configuration and fixtures."""

import pytest

from investor_ingest.stores.base import Stores
from investor_ingest.stores.memory import in_memory_stores


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture()
def stores() -> Stores:
    """A fresh, empty set of in-memory stores."""
    return in_memory_stores()
