"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the dealer analytics test suite.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.constants import (
    PROJECT_ROOT,
    METRIC_UNIQUE_VISITORS,
    METRIC_VISITS,
    METRIC_CREDIT_CARD,
    METRIC_ORDER_CONFIRMATION,
)
from services.dataset import Dataset
from services.memory import InteractionMemory


SAMPLE_CSV = PROJECT_ROOT / "storage" / "data" / "dealer_analytics_sample.csv"


# =============================================================================
# DATA FIXTURES
# =============================================================================

@pytest.fixture
def rows():
    """Five dealers, one with zero visits and one missing order confirmations."""
    return [
        {"dealer": "Alpha Mobile", METRIC_UNIQUE_VISITORS: 80, METRIC_VISITS: 100,
         METRIC_CREDIT_CARD: 10, METRIC_ORDER_CONFIRMATION: 5},
        {"dealer": "Bravo Wireless", METRIC_UNIQUE_VISITORS: 40, METRIC_VISITS: 50,
         METRIC_CREDIT_CARD: 20, METRIC_ORDER_CONFIRMATION: 8},
        {"dealer": "Charlie Cellular", METRIC_UNIQUE_VISITORS: 160, METRIC_VISITS: 200,
         METRIC_CREDIT_CARD: 30, METRIC_ORDER_CONFIRMATION: 12},
        {"dealer": "Delta Telecom", METRIC_UNIQUE_VISITORS: 0, METRIC_VISITS: 0,
         METRIC_CREDIT_CARD: 0, METRIC_ORDER_CONFIRMATION: 0},
        {"dealer": "Echo Connect", METRIC_UNIQUE_VISITORS: 20, METRIC_VISITS: 25,
         METRIC_CREDIT_CARD: 5, METRIC_ORDER_CONFIRMATION: None},
    ]


@pytest.fixture
def dataset(rows):
    return Dataset(rows)


@pytest.fixture
def sample_csv_path():
    return SAMPLE_CSV


@pytest.fixture
def memory():
    return InteractionMemory(capacity=100)


@pytest.fixture
def write_csv(tmp_path):
    """Write CSV text to a temp file and return its path."""
    def _write(text, name="export.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write
