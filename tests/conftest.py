"""
Shared pytest fixtures and configuration for tessera tests.

This module provides:
- A registry with the sample entity types (Customer, Profile, Order, Item)
- A seeded in-memory SQLite database behind a ConnectionManager
- A StorageContext wired to the RelationalDriver
- A StorageContext wired to the in-memory RecordingDriver

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(context):
            orders = context.executor.execute(QuerySpec(Order))
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from tessera.context import StorageContext
from tessera.drivers.connections import ConnectionManager, sqlite_connection
from tessera.drivers.relational import RelationalDriver
from tessera.model.metadata import MetadataRegistry
from tests._support.entities import ALL_TYPES, SCHEMA, SEED, Customer, Item, Order, Profile
from tests._support.recording import RecordingDriver


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "end_to_end" in str(test_path):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Metadata
# =============================================================================


@pytest.fixture
def registry() -> MetadataRegistry:
    return MetadataRegistry().register(*ALL_TYPES)


# =============================================================================
# SQLite
# =============================================================================


@pytest.fixture
def sqlite_conn():
    """Seeded in-memory SQLite connection."""
    conn = sqlite_connection(":memory:")
    conn.executescript(SCHEMA)
    conn.executescript(SEED)
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def connections(sqlite_conn) -> ConnectionManager:
    manager = ConnectionManager()
    manager.add("default", sqlite_conn, "sqlite")
    return manager


@pytest.fixture
def driver(connections, registry) -> RelationalDriver:
    return RelationalDriver(connections, registry)


@pytest.fixture
def context(driver, connections, registry) -> StorageContext:
    return StorageContext(driver=driver, connections=connections, registry=registry)


# =============================================================================
# In-memory recording driver
# =============================================================================


@pytest.fixture
def recording_driver() -> RecordingDriver:
    return RecordingDriver(
        {
            Customer: [
                {"id": 1, "name": "Ada", "email": "ada@example.com"},
                {"id": 2, "name": "Brian", "email": "brian@example.com"},
                {"id": 3, "name": "Cleo", "email": "cleo@example.com"},
            ],
            Profile: [
                {"id": 1, "customer_id": 1, "bio": "Mathematician"},
            ],
            Order: [
                {"id": 1, "customer_id": 1, "status": "open", "total": 30.0},
                {"id": 2, "customer_id": 1, "status": "closed", "total": 12.5},
                {"id": 3, "customer_id": 2, "status": "open", "total": 100.0},
                {"id": 4, "customer_id": None, "status": "open", "total": 5.0},
            ],
            Item: [
                {"id": 1, "order_id": 1, "sku": "A-1", "quantity": 1},
                {"id": 2, "order_id": 1, "sku": "B-2", "quantity": 2},
                {"id": 3, "order_id": 3, "sku": "C-3", "quantity": 5},
            ],
        }
    )


@pytest.fixture
def fake_context(recording_driver, registry) -> Generator[StorageContext, None, None]:
    yield StorageContext(driver=recording_driver, registry=registry)
