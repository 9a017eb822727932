"""
data_model.py
Data models for query parsing, execution and interaction memory.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional, Union

from services.constants import CALCULATED_RATIO_KEY, DEFAULT_USER_ID

Row = Dict[str, Any]

class Intent(str, Enum):
    GET_METRIC = "get_metric"
    FIND_TOP = "find_top"
    FIND_BOTTOM = "find_bottom"
    COMPARE = "compare"
    COMPARE_TOP_BOTTOM = "compare_top_bottom"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

class StatOperation(str, Enum):
    MEAN = "mean"
    MEDIAN = "median"
    STANDARD_DEVIATION = "standardDeviation"
    VARIANCE = "variance"
    CORRELATION = "correlation"

@dataclass
class SortSpec:
    """How to order the projected rows."""
    by: str             # metric name or "calculated_ratio"
    order: SortOrder = SortOrder.DESC

@dataclass
class QueryFilters:
    subject: Optional[str] = None   # case-insensitive substring on the subject column

@dataclass
class RatioCalculation:
    """Per-row numerator / denominator."""
    numerator: str
    denominator: str
    operation: str = field(default="ratio", init=False)

@dataclass
class StatisticalCalculation:
    """Aggregate over one metric, or two for correlation."""
    operation: StatOperation
    metric: str
    second_metric: Optional[str] = None
    type: str = field(default="statistical", init=False)

@dataclass
class StatisticalRatioCalculation:
    """Aggregate over the per-row ratio of two metrics."""
    operation: StatOperation
    numerator: str
    denominator: str
    type: str = field(default="statistical_ratio", init=False)

Calculation = Union[RatioCalculation, StatisticalCalculation, StatisticalRatioCalculation]

@dataclass
class Query:
    """Structured form of a natural language question."""
    intent: Intent = Intent.GET_METRIC
    metrics: List[str] = field(default_factory=list)
    filters: QueryFilters = field(default_factory=QueryFilters)
    sort: Optional[SortSpec] = None
    limit: Optional[int] = None
    top_bottom_limit: Optional[int] = None
    calculate: Optional[Calculation] = None
    include_all: bool = False

    def validate(self) -> None:
        """
        Check the structural invariants of the query.

        Raises:
            ValueError: If the query can't be executed as described
        """
        if not self.metrics:
            raise ValueError("Query must request at least one metric")

        if self.limit is not None and self.limit <= 0:
            raise ValueError(f"Query limit must be positive, got {self.limit}")

        if self.top_bottom_limit is not None and self.top_bottom_limit <= 0:
            raise ValueError(f"Top/bottom limit must be positive, got {self.top_bottom_limit}")

        calc = self.calculate
        if isinstance(calc, RatioCalculation):
            missing = [m for m in (calc.numerator, calc.denominator) if m not in self.metrics]
            if missing:
                raise ValueError(f"Ratio metrics missing from query metrics: {missing}")
        elif isinstance(calc, StatisticalCalculation):
            if not calc.metric:
                raise ValueError("Statistical calculation requires a metric")
            if calc.operation == StatOperation.CORRELATION and not calc.second_metric:
                raise ValueError("Correlation requires a second metric")
        elif isinstance(calc, StatisticalRatioCalculation):
            if not calc.numerator or not calc.denominator:
                raise ValueError("Statistical ratio requires a numerator and a denominator")
            if calc.operation == StatOperation.CORRELATION:
                raise ValueError("Correlation can't be applied to a single ratio series")

        if self.sort and self.sort.by == CALCULATED_RATIO_KEY and not isinstance(calc, RatioCalculation):
            raise ValueError("Sorting by calculated_ratio requires a ratio calculation")

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)

@dataclass
class Statistics:
    """Outcome of a statistical calculation."""
    operation: StatOperation
    metrics: List[str]
    value: Optional[float]
    description: str
    sample_size: int

@dataclass
class RowsResult:
    """Flat ranked / filtered rows."""
    query: Query
    results: List[Row]

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)

@dataclass
class TopBottomResult:
    """Independent top and bottom slices of the same row set."""
    query: Query
    top_results: List[Row]
    bottom_results: List[Row]
    combined_results: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)

@dataclass
class StatisticsResult:
    """A statistic plus a small sample of the rows it was computed from."""
    query: Query
    results: List[Row]
    statistics: Statistics

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)

QueryResult = Union[RowsResult, TopBottomResult, StatisticsResult]

@dataclass
class Interaction:
    """A stored question / answer pair."""
    id: str
    timestamp: datetime
    query: str
    parsed_query: Optional[Query]
    response: Optional[Any]
    user_id: str = DEFAULT_USER_ID
    referenced: bool = False

@dataclass
class ScoredInteraction(Interaction):
    """Interaction annotated with its keyword overlap against a new query."""
    relevance_score: int = 0

@dataclass
class AnswerPacket:
    """Final answer to user's query."""
    text: str
    status: int = 200
    parsed_query: Optional[Query] = None
    result: Optional[QueryResult] = None
    related: List[ScoredInteraction] = field(default_factory=list)
    interaction_id: Optional[str] = None
    error: Optional[str] = None

def copy_interaction(interaction: Interaction, cls=Interaction, **changes) -> Interaction:
    """Shallow copy of an interaction, optionally into a subclass."""
    values = {f.name: getattr(interaction, f.name) for f in fields(Interaction)}
    values.update(changes)
    return cls(**values)

def _to_plain(obj: Any) -> Any:
    """Recursively turn dataclasses and enums into JSON friendly values."""
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "__dataclass_fields__"):
        return {f.name: _to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_plain(v) for v in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj
