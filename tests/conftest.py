"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.services.branch_groups import BranchGroupRegistry


BRANCHES = [
    {"id": "1", "name": "Next Mərkəz", "type": "next"},
    {"id": "2", "name": "Next City Mall", "type": "next"},
    {"id": "3", "name": "Coffemania Gəncə", "type": "coffemania"},
    {"id": "4", "name": "Coffemania Azadlıq", "type": "coffemania"},
    {"id": "5", "name": "Warehouse", "type": "storage"},
]


class FakeOrdersClient:
    """Stands in for the order API; records the ranges it was asked for."""

    def __init__(self, orders=None, branches=None, error=None):
        self.orders = orders if orders is not None else {}
        self.branches = branches if branches is not None else list(BRANCHES)
        self.error = error
        self.requested = []

    def fetch_orders(self, date_range):
        self.requested.append((date_range.start_date, date_range.end_date))
        if self.error is not None:
            raise self.error
        return self.orders

    def list_branches(self):
        if self.error is not None:
            raise self.error
        return self.branches


@pytest.fixture
def branch_groups():
    """Registry with two branches per group and one ungrouped branch."""
    return BranchGroupRegistry.from_listing(BRANCHES)


@pytest.fixture
def raw_orders():
    """Three days of orders across both groups and an ungrouped branch."""
    return {
        "2024-01-01": {
            "Next Mərkəz": {"San Sebastian": "10", "Profiterol": "4,5"},
            "Coffemania Gəncə": {"San Sebastian": 6, "Şokolad": "3"},
        },
        "2024-01-02": {
            "Next City Mall": {"san  sebastian ": "20", "Şokolad lokumlu": "7"},
            "Coffemania Azadlıq": {"Şokolad lokumlu": "5", "Profiterol": "abc"},
            "Warehouse": {"San Sebastian": "2"},
        },
        "2024-01-03": {
            "Next Mərkəz": {"Şokolad": "8", "Profiterol": "-1"},
            "Coffemania Gəncə": {"Şokolad": "4"},
        },
    }


@pytest.fixture
def orders_client(raw_orders):
    return FakeOrdersClient(orders=raw_orders)


@pytest.fixture
def fake_orders_client():
    """Factory for FakeOrdersClient instances."""
    return FakeOrdersClient
