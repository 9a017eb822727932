"""
dataset.py
Read-only in-memory table the query executor runs against.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from services.constants import SUBJECT_COLUMN, COLUMN_ALIASES
from services.data_model import Row
from services.metric_resolver import MetricResolver, normalize_label
from services.utils import frame_to_records

logger = logging.getLogger(__name__)

class Dataset:
    """
    Ordered, read-only rows plus the canonical metric -> column lookup.

    Raw headers often differ cosmetically from canonical metric names
    ("creditCard", "Total Visits", placeholder ids like "5209"), so the
    mapping is worked out once per load instead of per cell.
    """

    def __init__(
        self,
        rows: Iterable[Row],
        subject_column: str = SUBJECT_COLUMN,
        metric_columns: Optional[List[str]] = None,
        column_aliases: Optional[Dict[str, str]] = None,
        resolver: Optional[MetricResolver] = None,
    ):
        self._rows = tuple(dict(r) for r in rows)
        self.subject_column = subject_column
        self.resolver = resolver or MetricResolver()
        self.column_aliases = dict(column_aliases if column_aliases is not None else COLUMN_ALIASES)

        if metric_columns is None:
            metric_columns = []
            for row in self._rows:
                for key in row:
                    if key != subject_column and key not in metric_columns:
                        metric_columns.append(key)
        self.metric_columns = list(metric_columns)

        self._column_cache: Dict[str, Optional[str]] = {}
        for metric in self.resolver.known_metrics:
            self.column_for(metric)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    @property
    def rows(self) -> tuple:
        return self._rows

    @classmethod
    def from_frame(cls, df: pd.DataFrame, subject_column: str = SUBJECT_COLUMN, **kwargs) -> "Dataset":
        metric_columns = [c for c in df.columns if c != subject_column]
        return cls(frame_to_records(df), subject_column=subject_column, metric_columns=metric_columns, **kwargs)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self._rows), columns=[self.subject_column] + self.metric_columns)

    def subjects(self) -> List[str]:
        return [str(r.get(self.subject_column, "")) for r in self._rows]

    def subject_of(self, row: Row) -> Any:
        return row.get(self.subject_column)

    def column_for(self, metric: str) -> Optional[str]:
        """
        Find the column holding a metric.

        Resolution order:
        1. explicit alias (raw header -> metric)
        2. exact column name (case-insensitive, separators ignored)
        3. column name containing the metric name
        4. column header resolving to the metric through the MetricResolver

        Returns:
            The column key, or None if the dataset doesn't carry the metric
        """
        if metric in self._column_cache:
            return self._column_cache[metric]

        column = None
        for raw_header, target in self.column_aliases.items():
            if target == metric and raw_header in self.metric_columns:
                column = raw_header
                break

        if column is None:
            wanted = metric.lower()
            wanted_norm = normalize_label(metric)
            column = next(
                (c for c in self.metric_columns
                 if str(c).lower() == wanted or normalize_label(c) == wanted_norm),
                None,
            )
        if column is None:
            column = next((c for c in self.metric_columns if metric.lower() in str(c).lower()), None)
        if column is None:
            column = next((c for c in self.metric_columns if self.resolver.resolve(str(c)) == metric), None)

        self._column_cache[metric] = column
        if column is None:
            logger.debug(f"Metric '{metric}' has no matching column")
        return column

    def value(self, row: Row, metric: str) -> Any:
        '''
          Value of a metric on a row, or None if the metric can't be found.
        '''
        column = self.column_for(metric)
        return row.get(column) if column is not None else None

    def with_calculated_fields(self, registry, fields: Optional[List[str]] = None) -> "Dataset":
        '''
          New dataset with calculated field columns appended to every row.
        '''
        rows = registry.apply_calculated_fields(self._rows, fields)
        names = fields or list(registry.get_calculated_fields())
        metric_columns = self.metric_columns + [n for n in names if n not in self.metric_columns]
        return Dataset(
            rows,
            subject_column=self.subject_column,
            metric_columns=metric_columns,
            column_aliases=self.column_aliases,
            resolver=self.resolver,
        )

def as_dataset(data: Any) -> Dataset:
    '''
      Accept a Dataset, a DataFrame or a plain list of row dicts.
    '''
    if isinstance(data, Dataset):
        return data
    if isinstance(data, pd.DataFrame):
        return Dataset.from_frame(data)
    if data is None:
        raise ValueError("No dataset loaded")
    return Dataset(data)
