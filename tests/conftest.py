"""Shared test fixtures for opsdata-core."""

import pytest

from opsdata_core import Dataset


@pytest.fixture
def system_stock():
    """A 6-row system-of-record snapshot with unit costs."""
    rows = [
        {"sku": "A100", "description": "Widget", "qty": 10, "unit_cost": 2.5, "location": "R1"},
        {"sku": "A200", "description": "Gadget", "qty": 5, "unit_cost": 10.0, "location": "R1"},
        {"sku": "A300", "description": "Sprocket", "qty": 20, "unit_cost": 1.0, "location": "R2"},
        {"sku": "A400", "description": "Bolt", "qty": 100, "unit_cost": 0.1, "location": "R2"},
        {"sku": "A500", "description": "Nut", "qty": 7, "unit_cost": 3.0, "location": "R3"},
        {"sku": "A600", "description": "Washer", "qty": "12", "unit_cost": "0.5", "location": None},
    ]
    return Dataset.from_records(rows, name="system")


@pytest.fixture
def physical_count():
    """A 5-row count: A100 short, A200 matched, A300 over, A500/A600 absent, A700 extra."""
    rows = [
        {"sku": "A100", "counted": 8},
        {"sku": "A200", "counted": 5},
        {"sku": "A300", "counted": "25"},
        {"sku": "A400", "counted": 100},
        {"sku": "A700", "counted": 4},
    ]
    return Dataset.from_records(rows, name="count")


@pytest.fixture
def price_list():
    """Reference table with a repeated key and an empty price."""
    rows = [
        {"code": "ABC", "price": 10},
        {"code": "DEF", "price": 20},
        {"code": "ABC", "price": 99},
        {"code": "GHI", "price": None},
    ]
    return Dataset.from_records(rows, name="prices")
