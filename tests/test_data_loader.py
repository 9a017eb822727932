import pytest

from services.constants import (
    KNOWN_METRICS,
    METRIC_VISITS,
    METRIC_CREDIT_CARD,
    METRIC_ORDER_CONFIRMATION,
)
from services.data_loader import load_dataset, get_metadata, find_header_line
from services.dataset import Dataset


def test_load_sample_export(sample_csv_path):
    ds = load_dataset(sample_csv_path)
    assert len(ds) == 12
    assert ds.subject_column == "dealer"
    assert ds.metric_columns == KNOWN_METRICS
    assert not any(s.startswith("#") for s in ds.subjects())


def test_thousands_separators_and_blanks(sample_csv_path):
    ds = load_dataset(sample_csv_path)
    northgate = next(r for r in ds.rows if r["dealer"] == "Northgate Mobility Ltd.")
    granite = next(r for r in ds.rows if r["dealer"] == "Granite Peak Wireless")
    assert ds.value(northgate, METRIC_VISITS) == 2310
    assert ds.value(granite, METRIC_VISITS) is None
    assert ds.value(granite, METRIC_ORDER_CONFIRMATION) is None


def test_header_without_preamble_uses_first_line(write_csv):
    path = write_csv("Dealer,Visits\nA,10\n#note,\nB,abc\n,5\n")
    ds = load_dataset(path)
    assert ds.subjects() == ["A", "B"]
    assert ds.rows[0]["Visits"] == 10
    assert ds.rows[1]["Visits"] is None


def test_marker_inside_longer_header(write_csv):
    path = write_csv(
        "Report,,\n"
        "Dealer Legal Name (v183),5209,34655\n"
        "Dealer Legal Name (v183),5209,34655\n"
        "A,4,\"1,000\"\n"
    )
    ds = load_dataset(path, column_aliases={"5209": METRIC_CREDIT_CARD, "34655": METRIC_VISITS})
    assert ds.subjects() == ["A"]
    assert ds.value(ds.rows[0], METRIC_CREDIT_CARD) == 4
    assert ds.value(ds.rows[0], METRIC_VISITS) == 1000


def test_find_header_line():
    assert find_header_line(["# preamble", "", "Dealer Legal Name,Visits", "A,1"]) == 2
    assert find_header_line(["Dealer,Visits", "A,1"]) == 0


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path / "nope.csv")


def test_get_metadata(sample_csv_path):
    meta = get_metadata(load_dataset(sample_csv_path))
    assert meta == {"metrics": KNOWN_METRICS, "dimensions": ["dealer"]}
    assert get_metadata(Dataset([])) == {"metrics": [], "dimensions": []}
