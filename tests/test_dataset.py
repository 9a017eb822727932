import pandas as pd
import pytest

from services.calculated_fields import CalculatedFieldRegistry, Operator
from services.constants import (
    METRIC_UNIQUE_VISITORS,
    METRIC_VISITS,
    METRIC_CREDIT_CARD,
    METRIC_ORDER_CONFIRMATION,
)
from services.dataset import Dataset, as_dataset


def test_metric_columns_are_inferred(dataset):
    assert dataset.metric_columns == [
        METRIC_UNIQUE_VISITORS, METRIC_VISITS, METRIC_CREDIT_CARD, METRIC_ORDER_CONFIRMATION]
    assert len(dataset) == 5
    assert dataset.subjects()[0] == "Alpha Mobile"


def test_column_lookup_order():
    rows = [{"dealer": "A", "Total Visits": 10, "creditCard": 3, "5209": 7}]
    ds = Dataset(rows, column_aliases={"5209": METRIC_ORDER_CONFIRMATION})
    assert ds.column_for(METRIC_ORDER_CONFIRMATION) == "5209"   # alias
    assert ds.column_for(METRIC_VISITS) == "Total Visits"        # containment
    assert ds.column_for(METRIC_CREDIT_CARD) == "creditCard"     # resolver on header
    assert ds.column_for(METRIC_UNIQUE_VISITORS) is None


def test_exact_match_ignores_case_and_separators():
    ds = Dataset([{"dealer": "A", "unique_visitors": 4}])
    assert ds.column_for(METRIC_UNIQUE_VISITORS) == "unique_visitors"


def test_value(dataset, rows):
    assert dataset.value(rows[0], METRIC_VISITS) == 100
    assert dataset.value(rows[0], "cse>mobility_sales>product_inventory") is None


def test_rows_are_copies(rows):
    ds = Dataset(rows)
    rows[0][METRIC_VISITS] = 999
    assert ds.rows[0][METRIC_VISITS] == 100


def test_frame_round_trip(dataset):
    df = dataset.to_frame()
    assert list(df.columns) == ["dealer"] + dataset.metric_columns
    back = Dataset.from_frame(df)
    assert back.rows[4][METRIC_ORDER_CONFIRMATION] is None
    assert back.rows[0][METRIC_VISITS] == 100


def test_with_calculated_fields(dataset):
    registry = CalculatedFieldRegistry()
    registry.register("cc_per_visit", Operator.DIVIDE, METRIC_CREDIT_CARD, METRIC_VISITS)
    enriched = dataset.with_calculated_fields(registry)
    assert "cc_per_visit" in enriched.metric_columns
    assert enriched.rows[0]["cc_per_visit"] == 0.1
    assert enriched.rows[3]["cc_per_visit"] is None
    assert "cc_per_visit" not in dataset.rows[0]


def test_as_dataset(dataset, rows):
    assert as_dataset(dataset) is dataset
    assert len(as_dataset(rows)) == 5
    assert len(as_dataset(pd.DataFrame(rows))) == 5
    with pytest.raises(ValueError):
        as_dataset(None)
