import plotly.graph_objects as go

from services.constants import (
    METRIC_VISITS,
    METRIC_CREDIT_CARD,
    CALCULATED_RATIO_KEY,
    RATIO_LABEL_KEY,
    NO_DATA_MESSAGE,
)
from services.data_model import Query, RowsResult, TopBottomResult
from services.nlq import parse_query
from services.query_executor import execute_query
from services.visualization_logic import (
    describe_query,
    summarize_result,
    result_to_frame,
    build_result_figure,
    format_header,
)


def test_describe_query():
    text = describe_query(parse_query("top 3 visits for northgate"))
    assert text == "Intent: find top | Metrics: Visits | Dealer: northgate | Limit: 3 | Sort by: Visits (desc)"


def test_describe_ratio_query():
    text = describe_query(parse_query("ratio of credit card to visits"))
    assert "Calculate: ratio of Credit Card Additions to Visits" in text


def test_describe_none():
    assert describe_query(None) == ""


def test_summary_fallbacks():
    assert summarize_result(None) == NO_DATA_MESSAGE
    assert summarize_result(RowsResult(query=Query(metrics=[METRIC_VISITS]), results=[])) == NO_DATA_MESSAGE
    empty = TopBottomResult(query=Query(metrics=[METRIC_VISITS]), top_results=[], bottom_results=[])
    assert summarize_result(empty) == NO_DATA_MESSAGE


def test_summary_for_bottom(dataset):
    text = summarize_result(execute_query(parse_query("bottom 2 visits"), dataset))
    assert "Here are the dealers with the lowest Visits:" in text
    assert "**Delta Telecom**" in text


def test_summary_for_ratio_ranking(dataset):
    result = execute_query(parse_query("top 2 dealers by credit card additions per visit"), dataset)
    text = summarize_result(result)
    assert "highest Credit Card Additions per Visits" in text
    assert "**Bravo Wireless** with **0.4000**" in text


def test_summary_for_subject_and_plain_listing(dataset):
    text = summarize_result(execute_query(parse_query("visits for alpha"), dataset))
    assert "Here are the metrics for alpha:" in text
    text = summarize_result(execute_query(parse_query("show visits"), dataset))
    assert "I found 5 results matching your query:" in text


def test_summary_for_top_bottom(dataset):
    text = summarize_result(execute_query(parse_query("top 2 and bottom 2 by visits"), dataset))
    assert "top 2 and bottom 2 dealers by Visits" in text


def test_summary_for_correlation_has_note(dataset):
    text = summarize_result(execute_query(parse_query("correlation between visits and credit card"), dataset))
    assert "correlation" in text
    assert "-1 to 1" in text


def test_format_header():
    assert format_header("dealer") == "Dealer"
    assert format_header(METRIC_CREDIT_CARD) == "Credit Card Additions"
    assert format_header("cse>mobility_sales>new_page") == "Cse - Mobility Sales - New Page"


def test_result_to_frame_titles_ratio_column(dataset):
    result = execute_query(parse_query("ratio of credit card to visits"), dataset)
    df = result_to_frame(result.results)
    assert RATIO_LABEL_KEY not in df.columns
    assert CALCULATED_RATIO_KEY not in df.columns
    assert "Credit Card Additions per Visits" in df.columns
    assert list(df.columns)[0] == "Dealer"
    assert len(df) == 5


def test_result_to_frame_empty():
    assert result_to_frame([]).empty


def test_figure_for_rows(dataset):
    fig = build_result_figure(execute_query(parse_query("top 3 visits"), dataset))
    assert isinstance(fig, go.Figure)
    assert list(fig.data[0].x) == ["Charlie Cellular", "Alpha Mobile", "Bravo Wireless"]


def test_figure_for_top_bottom(dataset):
    fig = build_result_figure(execute_query(parse_query("top 2 and bottom 2 by visits"), dataset))
    assert len(fig.data) == 2


def test_no_figure_for_statistics_or_empty(dataset):
    assert build_result_figure(execute_query(parse_query("median visits"), dataset)) is None
    assert build_result_figure(execute_query(parse_query("visits for nobody"), dataset)) is None
    assert build_result_figure(None) is None
