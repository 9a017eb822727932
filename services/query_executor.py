"""
query_executor.py
Runs a structured Query against an in-memory Dataset.

Pipeline: filter -> (statistics short circuit) -> project -> ratio -> sort -> shape.
Data problems (missing metrics, zero denominators, empty datasets) never
raise; they come back as None values or empty results. Only a structurally
invalid Query raises ValueError.
"""

import logging
from typing import Any, List, Optional, Tuple

from services.constants import (
    LOG_LEVEL,
    CALCULATED_RATIO_KEY,
    RATIO_LABEL_KEY,
    RATIO_DECIMALS,
    STATISTICS_SAMPLE_SIZE,
    DEFAULT_SORT_METRIC,
    DEFAULT_COMBINED_LIMIT,
)
from services.data_model import (
    Row, Query, QueryResult, Intent, SortOrder, SortSpec, StatOperation,
    RatioCalculation, StatisticalCalculation, StatisticalRatioCalculation,
    RowsResult, TopBottomResult, StatisticsResult,
)
from services.dataset import Dataset, as_dataset
from services.metric_resolver import display_name
from services.statistics import aggregate, correlate
from services.utils import to_number, round_half_up

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# (source row, projected row)
Entry = Tuple[Row, Row]

def output_key(dataset: Dataset, metric: str) -> str:
    '''
      Key a metric is reported under: the dataset's column, or the metric name if it has none.
    '''
    return dataset.column_for(metric) or metric

def filter_rows(dataset: Dataset, subject: Optional[str]) -> List[Row]:
    if not subject:
        return list(dataset.rows)
    needle = subject.lower()
    return [r for r in dataset.rows if needle in str(dataset.subject_of(r) or "").lower()]

def project_row(row: Row, dataset: Dataset, metrics: List[str]) -> Row:
    projected = {dataset.subject_column: dataset.subject_of(row)}
    for metric in metrics:
        projected[output_key(dataset, metric)] = dataset.value(row, metric)
    return projected

def ratio_of(row: Row, dataset: Dataset, numerator: str, denominator: str) -> Optional[float]:
    '''
      Unrounded numerator / denominator for a row, None if either side is missing or the denominator is zero.
    '''
    num = to_number(dataset.value(row, numerator))
    den = to_number(dataset.value(row, denominator))
    if num is None or den is None or den == 0:
        return None
    return num / den

def annotate_ratio(projected: Row, source: Row, dataset: Dataset, numerator: str, denominator: str) -> Row:
    '''
      Add calculated_ratio and ratio_label to a projected row. The row is always kept.
    '''
    out = dict(projected)
    label = f"{display_name(numerator)} per {display_name(denominator)}"
    num = to_number(dataset.value(source, numerator))
    den = to_number(dataset.value(source, denominator))

    if num is None or den is None:
        out[CALCULATED_RATIO_KEY] = None
        out[RATIO_LABEL_KEY] = f"Not applicable (missing {label} values)"
    elif den == 0:
        out[CALCULATED_RATIO_KEY] = None
        out[RATIO_LABEL_KEY] = f"Not applicable (zero {display_name(denominator)})"
    else:
        out[CALCULATED_RATIO_KEY] = round_half_up(num / den, RATIO_DECIMALS)
        out[RATIO_LABEL_KEY] = label
    return out

def sort_entries(entries: List[Entry], dataset: Dataset, sort: SortSpec) -> List[Entry]:
    """
    Sort (source, projected) pairs.

    calculated_ratio treats None as 0. For metrics, rows without a numeric
    value go last whatever the order.
    """
    descending = sort.order == SortOrder.DESC

    if sort.by == CALCULATED_RATIO_KEY:
        return sorted(entries, key=lambda e: e[1].get(CALCULATED_RATIO_KEY) or 0, reverse=descending)

    def metric_value(entry: Entry) -> Optional[float]:
        return to_number(dataset.value(entry[0], sort.by))

    present = [e for e in entries if metric_value(e) is not None]
    missing = [e for e in entries if metric_value(e) is None]
    return sorted(present, key=metric_value, reverse=descending) + missing

def run_statistics(query: Query, dataset: Dataset, rows: List[Row]) -> StatisticsResult:
    calc = query.calculate

    if isinstance(calc, StatisticalRatioCalculation):
        label = f"{display_name(calc.numerator)} per {display_name(calc.denominator)}"
        ratios = [r for r in (ratio_of(row, dataset, calc.numerator, calc.denominator) for row in rows) if r is not None]
        statistics = aggregate(calc.operation, ratios, [calc.numerator, calc.denominator], label)
        sample = [
            annotate_ratio(project_row(row, dataset, [calc.numerator, calc.denominator]), row,
                           dataset, calc.numerator, calc.denominator)
            for row in rows[:STATISTICS_SAMPLE_SIZE]
        ]
        return StatisticsResult(query=query, results=sample, statistics=statistics)

    if calc.operation == StatOperation.CORRELATION:
        metrics = [calc.metric, calc.second_metric]
        pairs = []
        for row in rows:
            x = to_number(dataset.value(row, calc.metric))
            y = to_number(dataset.value(row, calc.second_metric))
            if x is not None and y is not None:
                pairs.append((x, y))
        statistics = correlate(pairs, metrics, display_name(calc.metric), display_name(calc.second_metric))
    else:
        metrics = [calc.metric]
        values = [v for v in (to_number(dataset.value(row, calc.metric)) for row in rows) if v is not None]
        statistics = aggregate(calc.operation, values, metrics, display_name(calc.metric))

    sample = [project_row(row, dataset, metrics) for row in rows[:STATISTICS_SAMPLE_SIZE]]
    return StatisticsResult(query=query, results=sample, statistics=statistics)

def execute_query(query: Query, dataset: Any) -> QueryResult:
    """
    Execute a structured query.

    Args:
        query: Parsed query
        dataset: Dataset, DataFrame or list of row dicts

    Returns:
        RowsResult, TopBottomResult or StatisticsResult

    Raises:
        ValueError: If the query is structurally invalid or no dataset was given
    """
    query.validate()
    dataset = as_dataset(dataset)

    rows = filter_rows(dataset, query.filters.subject)
    logger.info(f"Executing {query.intent.value} query over {len(rows)} of {len(dataset)} rows")

    calc = query.calculate
    if isinstance(calc, (StatisticalCalculation, StatisticalRatioCalculation)):
        return run_statistics(query, dataset, rows)

    entries = [(row, project_row(row, dataset, query.metrics)) for row in rows]

    if isinstance(calc, RatioCalculation):
        entries = [
            (src, annotate_ratio(proj, src, dataset, calc.numerator, calc.denominator))
            for src, proj in entries
        ]

    if query.sort:
        entries = sort_entries(entries, dataset, query.sort)

    if query.intent == Intent.COMPARE_TOP_BOTTOM:
        sort_by = query.sort.by if query.sort else DEFAULT_SORT_METRIC
        n = query.top_bottom_limit or DEFAULT_COMBINED_LIMIT
        top = sort_entries(entries, dataset, SortSpec(by=sort_by, order=SortOrder.DESC))[:n]
        bottom = sort_entries(entries, dataset, SortSpec(by=sort_by, order=SortOrder.ASC))[:n]
        return TopBottomResult(
            query=query,
            top_results=[proj for _, proj in top],
            bottom_results=[proj for _, proj in bottom],
        )

    if query.limit:
        entries = entries[:query.limit]

    return RowsResult(query=query, results=[proj for _, proj in entries])
