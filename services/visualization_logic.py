"""
visualization_logic.py
Turns parsed queries and query results into chat text, tables and charts.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from services.constants import (
    SUBJECT_COLUMN,
    CALCULATED_RATIO_KEY,
    RATIO_LABEL_KEY,
    METRIC_DISPLAY_NAMES,
    NO_DATA_MESSAGE,
    DEFAULT_SORT_METRIC,
)
from services.data_model import (
    Intent, Query, QueryResult, Row, SortOrder, StatOperation,
    RowsResult, TopBottomResult, StatisticsResult,
    RatioCalculation, StatisticalCalculation, StatisticalRatioCalculation,
)
from services.metric_resolver import display_name
from services.statistics import OPERATION_NAMES, format_number

logger = logging.getLogger(__name__)

INTENT_DESCRIPTIONS = {
    Intent.GET_METRIC: "look up dealer metrics",
    Intent.FIND_TOP: "find the top dealers",
    Intent.FIND_BOTTOM: "find the bottom dealers",
    Intent.COMPARE: "compare dealers",
    Intent.COMPARE_TOP_BOTTOM: "compare top and bottom results",
}

CORRELATION_NOTE = ("Correlation ranges from -1 to 1: 1 is a perfect positive correlation, "
                    "0 is no correlation and -1 is a perfect negative correlation.")

# :::::: Text :::::: #

def describe_calculation(calc) -> str:
    if isinstance(calc, RatioCalculation):
        return f"ratio of {display_name(calc.numerator)} to {display_name(calc.denominator)}"
    if isinstance(calc, StatisticalRatioCalculation):
        return (f"{OPERATION_NAMES[calc.operation]} of {display_name(calc.numerator)} "
                f"per {display_name(calc.denominator)}")
    if isinstance(calc, StatisticalCalculation):
        if calc.operation == StatOperation.CORRELATION:
            return f"correlation between {display_name(calc.metric)} and {display_name(calc.second_metric)}"
        return f"{OPERATION_NAMES[calc.operation]} of {display_name(calc.metric)}"
    return ""

def describe_query(query: Optional[Query]) -> str:
    '''
      One line interpretation of a parsed query, e.g.
      "Intent: find top | Metrics: Visits | Limit: 3 | Sort by: Visits (desc)"
    '''
    if query is None:
        return ""

    parts = [f"Intent: {query.intent.value.replace('_', ' ')}"]
    if query.metrics:
        parts.append(f"Metrics: {', '.join(display_name(m) for m in query.metrics)}")
    if query.filters.subject:
        parts.append(f"Dealer: {query.filters.subject}")
    if query.limit:
        parts.append(f"Limit: {query.limit}")
    if query.top_bottom_limit:
        parts.append(f"Top/bottom: {query.top_bottom_limit} each")
    if query.sort:
        by = "Calculated ratio" if query.sort.by == CALCULATED_RATIO_KEY else display_name(query.sort.by)
        parts.append(f"Sort by: {by} ({query.sort.order.value})")
    if query.calculate:
        parts.append(f"Calculate: {describe_calculation(query.calculate)}")
    return " | ".join(parts) or "General query about analytics data"

def _ratio_label(rows: List[Row]) -> str:
    for row in rows:
        if row.get(CALCULATED_RATIO_KEY) is not None and row.get(RATIO_LABEL_KEY):
            return row[RATIO_LABEL_KEY]
    return "Ratio"

def _ranking_key(rows: List[Row], query: Query) -> Optional[str]:
    '''
      Column a ranked result is ordered by, as it appears in the rows.
    '''
    if not rows:
        return None
    keys = [k for k in rows[0] if k not in (SUBJECT_COLUMN, RATIO_LABEL_KEY)]
    if CALCULATED_RATIO_KEY in keys:
        return CALCULATED_RATIO_KEY
    sort_by = query.sort.by if query.sort else DEFAULT_SORT_METRIC
    if sort_by in keys:
        return sort_by
    return next((k for k in keys if isinstance(rows[0].get(k), (int, float))), None)

def _value_text(value: Any) -> str:
    if isinstance(value, (int, float)):
        return format_number(float(value))
    return str(value)

def summarize_result(result: Optional[QueryResult]) -> str:
    """
    Chat text for a query result.

    Args:
        result: Outcome of execute_query

    Returns:
        Markdown text; the no-data message when there is nothing to show
    """
    if result is None:
        return NO_DATA_MESSAGE

    query = result.query

    if isinstance(result, StatisticsResult):
        lines = [f"I understood you wanted to calculate the {describe_calculation(query.calculate)}.",
                 result.statistics.description]
        if result.statistics.operation == StatOperation.CORRELATION:
            lines.append(CORRELATION_NOTE)
        return "\n\n".join(lines)

    intro = f"I understood you wanted to {INTENT_DESCRIPTIONS[query.intent]}."

    if isinstance(result, TopBottomResult):
        if not result.top_results and not result.bottom_results:
            return NO_DATA_MESSAGE
        sort_by = query.sort.by if query.sort else DEFAULT_SORT_METRIC
        by = _ratio_label(result.top_results) if sort_by == CALCULATED_RATIO_KEY else display_name(sort_by)
        return (f"{intro}\n\nHere are the top {len(result.top_results)} and bottom "
                f"{len(result.bottom_results)} dealers by {by}:")

    rows = result.results
    if not rows:
        return NO_DATA_MESSAGE

    if query.intent in (Intent.FIND_TOP, Intent.FIND_BOTTOM) or (query.intent == Intent.COMPARE and query.sort):
        key = _ranking_key(rows, query)
        order = "lowest" if query.sort and query.sort.order == SortOrder.ASC else "highest"
        label = _ratio_label(rows) if key == CALCULATED_RATIO_KEY else display_name(key or DEFAULT_SORT_METRIC)
        lines = [intro, f"Here are the dealers with the {order} {label}:"]

        leader = rows[0]
        if key and leader.get(key) is not None:
            lines.append(f"The dealer with the {order} {label} is **{leader.get(SUBJECT_COLUMN)}** "
                         f"with **{_value_text(leader[key])}**.")
        return "\n\n".join(lines)

    if query.filters.subject:
        return f"{intro}\n\nHere are the metrics for {query.filters.subject}:"

    return f"{intro}\n\nI found {len(rows)} results matching your query:"

# :::::: Tables :::::: #

def format_header(header: str) -> str:
    '''
      "cse>mobility_sales>order_confirmation" -> "Order Confirmations", unknown headers are beautified.
    '''
    if header == SUBJECT_COLUMN:
        return "Dealer"
    if header in METRIC_DISPLAY_NAMES:
        return METRIC_DISPLAY_NAMES[header]
    text = header.replace("_", " ").replace(">", " - ").replace(":", " ")
    return " ".join(w[:1].upper() + w[1:] for w in text.split(" ") if w)

def result_to_frame(rows: List[Row]) -> pd.DataFrame:
    """
    Rows -> display DataFrame.

    ratio_label is dropped and calculated_ratio is titled with the label of
    the first row that has a ratio.
    """
    if not rows:
        return pd.DataFrame()

    df = pd.DataFrame(rows)
    ratio_title = _ratio_label(rows)
    if RATIO_LABEL_KEY in df.columns:
        df = df.drop(columns=[RATIO_LABEL_KEY])

    renames: Dict[str, str] = {}
    for col in df.columns:
        renames[col] = ratio_title if col == CALCULATED_RATIO_KEY else format_header(str(col))
    return df.rename(columns=renames)

# :::::: Charts :::::: #

class ChartBuilder:
    """Handles all chart building"""

    @staticmethod
    def _bar(rows: List[Row], key: str, name: str) -> go.Bar:
        return go.Bar(
            x=[r.get(SUBJECT_COLUMN) for r in rows],
            y=[r.get(key) for r in rows],
            name=name,
            hovertemplate='Dealer: %{x}<br>' + name + ': %{y:,.4~f}<extra></extra>'
        )

    @staticmethod
    def create_bar_figure(rows: List[Row], key: str, title: str) -> go.Figure:
        name = title if key == CALCULATED_RATIO_KEY else format_header(key)
        fig = go.Figure(ChartBuilder._bar(rows, key, name))
        fig.update_layout(
            height=420,
            showlegend=False,
            title_text=f"{name} by Dealer",
        )
        fig.update_xaxes(tickangle=-45)
        fig.update_yaxes(title_text=name)
        return fig

    @staticmethod
    def create_top_bottom_figure(top: List[Row], bottom: List[Row], key: str, title: str) -> go.Figure:
        name = title if key == CALCULATED_RATIO_KEY else format_header(key)
        fig = make_subplots(
            rows=1, cols=2,
            subplot_titles=(f"Top {len(top)}", f"Bottom {len(bottom)}"),
            horizontal_spacing=0.1
        )
        fig.add_trace(ChartBuilder._bar(top, key, name), row=1, col=1)
        fig.add_trace(ChartBuilder._bar(bottom, key, name), row=1, col=2)
        fig.update_layout(
            height=420,
            showlegend=False,
            title_text=f"{name}: Top vs Bottom Dealers",
        )
        fig.update_xaxes(tickangle=-45)
        return fig

def build_result_figure(result: Optional[QueryResult]) -> Optional[go.Figure]:
    '''
      Bar chart for ranked results. None for statistics or when there's nothing to plot.
    '''
    if result is None or isinstance(result, StatisticsResult):
        return None

    if isinstance(result, TopBottomResult):
        rows = result.top_results + result.bottom_results
        key = _ranking_key(rows, result.query)
        if not key:
            return None
        return ChartBuilder.create_top_bottom_figure(
            result.top_results, result.bottom_results, key, _ratio_label(rows))

    rows = result.results
    key = _ranking_key(rows, result.query)
    if not key:
        return None
    return ChartBuilder.create_bar_figure(rows, key, _ratio_label(rows))
