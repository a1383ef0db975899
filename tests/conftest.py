"""
Shared pytest fixtures and configuration for recordview tests.

This module provides:
- Settings cache isolation (autouse)
- A small transactions dataset and the pipeline components built on it

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(table):
            table.search("string_query", query="ali")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Generator

import pytest

from recordview.core.events import Event, EventBus
from recordview.core.fields import FieldRegistry
from recordview.core.records import RecordStore
from recordview.core.settings import RecordViewSettings, clear_settings_cache
from recordview.table import RecordTable


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        markers = {mark.name for mark in item.iter_markers()}
        if test_path.parts[0] == "cli" or test_path.name == "test_table.py":
            item.add_marker(pytest.mark.integration)
        elif not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any RECORDVIEW_* variables around each test."""
    import os

    for key in list(os.environ):
        if key.startswith("RECORDVIEW_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Data
# =============================================================================

FIELDS = ["TransactionID", "UserName", "Date", "Amount", "PaymentMethod", "Status", "TransactionType"]


@pytest.fixture
def transactions() -> list[dict[str, Any]]:
    """Seven transactions; T4 has a null Amount and T7 has none at all."""
    return [
        {"TransactionID": "T1", "UserName": "Zeeshan", "Date": "2024-01-05", "Amount": 250.0,
         "PaymentMethod": "Card", "Status": "Completed", "TransactionType": "Purchase"},
        {"TransactionID": "T2", "UserName": "Ali", "Date": "2024-01-12", "Amount": 1200,
         "PaymentMethod": "Bank Transfer", "Status": "Pending", "TransactionType": "Transfer"},
        {"TransactionID": "T3", "UserName": "Ahmed", "Date": "2024-02-01", "Amount": 75.5,
         "PaymentMethod": "Cash", "Status": "Completed", "TransactionType": "Purchase"},
        {"TransactionID": "T4", "UserName": "Ali", "Date": "2024-02-15", "Amount": None,
         "PaymentMethod": "Card", "Status": "Failed", "TransactionType": "Refund"},
        {"TransactionID": "T5", "UserName": "Zeeshan", "Date": "2024-03-03", "Amount": 980,
         "PaymentMethod": "Wallet", "Status": "Completed", "TransactionType": "Transfer"},
        {"TransactionID": "T6", "UserName": "Ahmed", "Date": "2024-03-20", "Amount": 15,
         "PaymentMethod": "Card", "Status": "Completed", "TransactionType": "Purchase"},
        {"TransactionID": "T7", "UserName": "Ali", "Date": "2024-04-01",
         "PaymentMethod": "Cash", "Status": "Pending", "TransactionType": "Purchase"},
    ]


@pytest.fixture
def people() -> list[dict[str, Any]]:
    return [{"id": 1, "name": "Ahmed"}, {"id": 2, "name": "Ali"}, {"id": 3, "name": "Ahmed"}]


# =============================================================================
# Components
# =============================================================================


@pytest.fixture
def settings() -> RecordViewSettings:
    return RecordViewSettings()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry(bus: EventBus) -> FieldRegistry:
    return FieldRegistry(FIELDS, bus=bus)


@pytest.fixture
def store(registry: FieldRegistry, bus: EventBus) -> RecordStore:
    return RecordStore(registry, bus)


@pytest.fixture
def table(transactions, settings) -> RecordTable:
    return RecordTable(transactions, FIELDS, settings=settings, page_size=3)


@pytest.fixture
def events(bus: EventBus) -> list[Event]:
    """Every event published on ``bus``, in order."""
    seen: list[Event] = []
    bus.subscribe("*", seen.append)
    return seen

