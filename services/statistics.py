# ------------------------------
# Module: statistics.py
# Description: Statistical aggregates over metric samples
# ------------------------------

import logging
from typing import List, Tuple

import pandas as pd

from services.constants import CORRELATION_STRENGTHS, STATISTIC_DECIMALS
from services.data_model import StatOperation, Statistics
from services.utils import round_half_up

logger = logging.getLogger(__name__)

OPERATION_NAMES = {
    StatOperation.MEAN: "average",
    StatOperation.MEDIAN: "median",
    StatOperation.STANDARD_DEVIATION: "standard deviation",
    StatOperation.VARIANCE: "variance",
    StatOperation.CORRELATION: "correlation",
}

# Spread measures use the sample (n - 1) formulas and need two values
_MIN_SAMPLE = {
    StatOperation.MEAN: 1,
    StatOperation.MEDIAN: 1,
    StatOperation.STANDARD_DEVIATION: 2,
    StatOperation.VARIANCE: 2,
}

def format_number(value: float) -> str:
    if abs(value) >= 1:
        return f"{value:,.2f}"
    return f"{value:.4f}"

def correlation_strength(r: float) -> str:
    for threshold, label in CORRELATION_STRENGTHS:
        if abs(r) > threshold:
            return label
    return "no"

def aggregate(operation: StatOperation, values: List[float], metrics: List[str], label: str) -> Statistics:
    """
    Apply a single-series aggregate.

    Args:
        operation: mean, median, standardDeviation or variance
        values: numeric sample, missing values already removed
        metrics: metric names reported back in the result
        label: human friendly name of what was measured

    Returns:
        Statistics with value None when the sample is too small
    """
    if operation == StatOperation.CORRELATION:
        raise ValueError("Use correlate() for correlation")

    name = OPERATION_NAMES[operation]
    series = pd.Series(values, dtype="float64")
    n = len(series)

    if n < _MIN_SAMPLE[operation]:
        return Statistics(
            operation=operation,
            metrics=metrics,
            value=None,
            description=f"Not enough data to calculate the {name} of {label} "
                        f"(need at least {_MIN_SAMPLE[operation]} values, found {n}).",
            sample_size=n,
        )

    if operation == StatOperation.MEAN:
        raw = series.mean()
    elif operation == StatOperation.MEDIAN:
        raw = series.median()
    elif operation == StatOperation.STANDARD_DEVIATION:
        raw = series.std()
    else:
        raw = series.var()

    value = round_half_up(float(raw), STATISTIC_DECIMALS)
    return Statistics(
        operation=operation,
        metrics=metrics,
        value=value,
        description=f"The {name} of {label} is {format_number(value)} across {n} dealers.",
        sample_size=n,
    )

def correlate(pairs: List[Tuple[float, float]], metrics: List[str], first_label: str, second_label: str) -> Statistics:
    """
    Pearson correlation over (x, y) pairs.

    Returns:
        Statistics with value None for fewer than two pairs or a constant series
    """
    n = len(pairs)
    between = f"{first_label} and {second_label}"

    if n < 2:
        return Statistics(
            operation=StatOperation.CORRELATION,
            metrics=metrics,
            value=None,
            description=f"Not enough data to calculate the correlation between {between} "
                        f"(need at least 2 dealers with both values, found {n}).",
            sample_size=n,
        )

    xs = pd.Series([p[0] for p in pairs], dtype="float64")
    ys = pd.Series([p[1] for p in pairs], dtype="float64")
    r = xs.corr(ys)

    if pd.isna(r):
        logger.info(f"Correlation undefined for {between}: a series has no variation")
        return Statistics(
            operation=StatOperation.CORRELATION,
            metrics=metrics,
            value=None,
            description=f"The correlation between {between} can't be calculated because one of them doesn't vary.",
            sample_size=n,
        )

    strength = correlation_strength(r)
    value = round_half_up(float(r), STATISTIC_DECIMALS)
    if strength == "no":
        description = f"There is no correlation (r = {value:.4f}) between {between} across {n} dealers."
    else:
        direction = "positive" if r > 0 else "negative"
        description = (f"There is a {strength} {direction} correlation (r = {value:.4f}) "
                       f"between {between} across {n} dealers.")

    return Statistics(
        operation=StatOperation.CORRELATION,
        metrics=metrics,
        value=value,
        description=description,
        sample_size=n,
    )
