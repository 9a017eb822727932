"""
nlq.py
Rule-based natural language query parser.

Turns a free text question such as "top 3 dealers by visits" or
"average credit card additions per visit" into a structured Query.
It's a keyword classifier, not a grammar: every rule is a substring or
regex test against the lower-cased question, and anything it can't make
sense of falls back to defaults rather than failing.
"""

import re
import logging
from typing import List, Optional, Tuple

from services.constants import (
    KNOWN_METRICS,
    METRIC_TRIGGERS,
    SORT_METRIC_TRIGGERS,
    METRIC_PHRASES,
    METRIC_ORDER_CONFIRMATION,
    METRIC_VISITS,
    AMBIGUOUS_RATIO_PAIRS,
    DEFAULT_METRIC,
    DEFAULT_SECOND_METRIC,
    DEFAULT_SORT_METRIC,
    DEFAULT_RATIO_NUMERATOR,
    DEFAULT_RATIO_DENOMINATOR,
    TOP_WORDS,
    BOTTOM_WORDS,
    COMBINED_TOP_WORDS,
    COMBINED_BOTTOM_WORDS,
    COMPARE_WORD,
    SUBJECT_FILTER_EXCLUDES,
    SUBJECT_WORDS,
    INCLUDE_ALL_PHRASES,
    DEFAULT_TOP_BOTTOM_LIMIT,
    DEFAULT_COMPARE_LIMIT,
    DEFAULT_COMBINED_LIMIT,
    INCLUDE_ALL_LIMIT,
    CALCULATED_RATIO_KEY,
)
from services.data_model import (
    Intent, SortOrder, StatOperation, SortSpec, QueryFilters, Query,
    Calculation, RatioCalculation, StatisticalCalculation, StatisticalRatioCalculation,
)

logger = logging.getLogger(__name__)

# Free text span allowed inside a ratio phrase, including raw metric names like "pap_added:credit_card"
_SPAN = r"([a-z\s>:_]+)"

# Tried in order, first match wins
RATIO_PATTERNS = [
    re.compile(rf"ratio\s+of\s+{_SPAN}\s+to\s+{_SPAN}"),
    re.compile(rf"{_SPAN}\s+divided\s+by\s+{_SPAN}"),
    re.compile(rf"{_SPAN}\s+per\s+{_SPAN}"),
    re.compile(rf"{_SPAN}\s+by\s+{_SPAN}"),
]
PER_PATTERN = RATIO_PATTERNS[2]
BY_PATTERN = RATIO_PATTERNS[-1]

RATIO_WORD_RE = re.compile(r"\bratio\b|divide")
STAT_TRIGGER_RE = re.compile(r"\b(?:average|mean\b|median|standard deviation|std dev|variance|correlation)")

SUBJECT_PATTERNS = [
    re.compile(r"\bfor\s+([a-z0-9_\s&.]+)"),
    re.compile(r"\babout\s+([a-z0-9_\s&.]+)"),
]

TOP_LIMIT_PATTERNS = [re.compile(r"top\s+(\d+)"), re.compile(r"(\d+)\s+sales")]
BOTTOM_LIMIT_PATTERNS = [re.compile(r"bottom\s+(\d+)"), re.compile(r"(\d+)\s+sales")]
COMBINED_LIMIT_PATTERNS = [
    re.compile(r"top\s+(\d+)"),
    re.compile(r"(\d+)\s+top"),
    re.compile(r"bottom\s+(\d+)"),
    re.compile(r"(\d+)\s+bottom"),
]

def _has_word(text: str, words: List[str]) -> bool:
    return any(re.search(rf"\b{re.escape(w)}\b", text) for w in words)

def _first_int(text: str, patterns: List[re.Pattern]) -> Optional[int]:
    '''
      Return the first positive integer captured by the patterns, in pattern order.
    '''
    for pattern in patterns:
        match = pattern.search(text)
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
    return None

# :::::: Metric detection :::::: #

def detect_metrics(text: str) -> List[str]:
    '''
      Collect the canonical metrics a lower-cased question mentions, in trigger order.
      Text claimed by an earlier metric is blanked so "unique visitors" doesn't also count as "visits".
    '''
    found = []
    remaining = text
    for metric, phrases in METRIC_TRIGGERS:
        hit = False
        for phrase in [metric.lower()] + phrases:
            if phrase in remaining:
                hit = True
                remaining = remaining.replace(phrase, " " * len(phrase))
        if hit and metric not in found:
            found.append(metric)
    return found

def choose_sort_metric(text: str) -> str:
    for metric, phrases in SORT_METRIC_TRIGGERS:
        if any(p in text for p in phrases):
            return metric
    return DEFAULT_SORT_METRIC

# :::::: Calculation detection :::::: #

def detect_stat_operation(text: str) -> Optional[StatOperation]:
    if not STAT_TRIGGER_RE.search(text):
        return None
    if "median" in text:
        return StatOperation.MEDIAN
    if "standard deviation" in text or "std dev" in text:
        return StatOperation.STANDARD_DEVIATION
    if "variance" in text:
        return StatOperation.VARIANCE
    if "correlation" in text:
        return StatOperation.CORRELATION
    return StatOperation.MEAN

def resolve_ratio_span(span: str) -> Optional[str]:
    '''
      Resolve one side of a ratio phrase to a canonical metric.
      exact name -> contained name -> phrase dictionary -> ambiguity overrides (applied last)
    '''
    span = span.strip()
    if not span:
        return None

    metric = next((m for m in KNOWN_METRICS if span == m.lower()), None)
    if metric is None:
        metric = next((m for m in KNOWN_METRICS if m.lower() in span), None)
    if metric is None:
        contained = [p for p in METRIC_PHRASES if p in span]
        if contained:
            metric = METRIC_PHRASES[max(contained, key=len)]

    if "order" in span or "confirmation" in span:
        metric = METRIC_ORDER_CONFIRMATION
    elif ("visit" in span or "traffic" in span) and "unique" not in span:
        metric = METRIC_VISITS

    return metric

def _names_subject(span: str) -> bool:
    return resolve_ratio_span(span) is None and any(word in SUBJECT_WORDS for word in span.split())

def has_ratio_trigger(text: str) -> bool:
    '''
      "ratio" or "divide" always count. "X per Y" counts unless Y is a subject noun,
      so "average visits per dealer" stays a plain average. A bare "X by Y" only counts
      when both sides name metrics, so "top 5 dealers by visits" stays a ranking.
    '''
    if RATIO_WORD_RE.search(text):
        return True
    per = PER_PATTERN.search(text)
    if per and not _names_subject(per.group(2)):
        return True
    match = BY_PATTERN.search(text)
    if not match or any(word in SUBJECT_WORDS for word in match.group(1).split()):
        return False
    return bool(resolve_ratio_span(match.group(1)) and resolve_ratio_span(match.group(2)))

def _first_mention(text: str, metric: str) -> Optional[int]:
    phrases = [metric.lower()] + next((p for m, p in METRIC_TRIGGERS if m == metric), [])
    positions = [text.find(p) for p in phrases if p in text]
    return min(positions) if positions else None

def extract_ratio_metrics(text: str) -> Tuple[str, str]:
    '''
      Work out numerator and denominator of a ratio question.

      Returns:
          (numerator, denominator), defaulting to credit card additions per visit
    '''
    numerator, denominator = DEFAULT_RATIO_NUMERATOR, DEFAULT_RATIO_DENOMINATOR

    match = None
    for pattern in RATIO_PATTERNS:
        match = pattern.search(text)
        if match:
            break
    if not match:
        return numerator, denominator

    numerator = resolve_ratio_span(match.group(1)) or numerator
    denominator = resolve_ratio_span(match.group(2)) or denominator

    # Easily flipped pairs mentioned before the ratio phrase: earlier mention is the numerator
    if frozenset({numerator, denominator}) in AMBIGUOUS_RATIO_PAIRS:
        prefix = text[:match.start()]
        num_pos = _first_mention(prefix, numerator)
        den_pos = _first_mention(prefix, denominator)
        if num_pos is not None and den_pos is not None and den_pos < num_pos:
            numerator, denominator = denominator, numerator

    # A metric over itself is always 1, fall back to the other default side
    if numerator == denominator:
        if numerator == DEFAULT_RATIO_DENOMINATOR:
            denominator = DEFAULT_RATIO_NUMERATOR
        else:
            denominator = DEFAULT_RATIO_DENOMINATOR
        logger.info(f"Ratio of {numerator} to itself replaced with {numerator} per {denominator}")

    return numerator, denominator

def build_calculation(text: str, metrics: List[str]) -> Optional[Calculation]:
    '''
      Statistical + ratio -> statistical ratio, statistical alone, ratio alone, in that priority.
    '''
    operation = detect_stat_operation(text)
    ratio = has_ratio_trigger(text)

    if operation is not None and ratio:
        numerator, denominator = extract_ratio_metrics(text)
        if operation == StatOperation.CORRELATION:
            # A single ratio series has nothing to correlate with, correlate its two sides instead
            return StatisticalCalculation(operation=operation, metric=numerator, second_metric=denominator)
        return StatisticalRatioCalculation(operation=operation, numerator=numerator, denominator=denominator)

    if operation is not None:
        metric = metrics[0] if metrics else DEFAULT_METRIC
        if operation != StatOperation.CORRELATION:
            return StatisticalCalculation(operation=operation, metric=metric)
        if len(metrics) >= 2:
            second = metrics[1]
        else:
            second = DEFAULT_SECOND_METRIC if metric != DEFAULT_SECOND_METRIC else DEFAULT_METRIC
        return StatisticalCalculation(operation=operation, metric=metric, second_metric=second)

    if ratio:
        numerator, denominator = extract_ratio_metrics(text)
        return RatioCalculation(numerator=numerator, denominator=denominator)

    return None

def _calculation_metrics(calc: Optional[Calculation]) -> List[str]:
    if isinstance(calc, StatisticalCalculation):
        return [m for m in (calc.metric, calc.second_metric) if m]
    if isinstance(calc, (RatioCalculation, StatisticalRatioCalculation)):
        return [calc.numerator, calc.denominator]
    return []

# :::::: Filters & ranking :::::: #

def extract_subject_filter(text: str) -> Optional[str]:
    '''
      "for <name>" / "about <name>", unless the capture means "all subjects" ("for each dealer").
    '''
    match = None
    for pattern in SUBJECT_PATTERNS:
        match = pattern.search(text)
        if match:
            break
    if not match:
        return None

    captured = match.group(1).strip().rstrip(". ")
    if not captured or any(word in SUBJECT_FILTER_EXCLUDES for word in captured.split()):
        return None
    return captured

def parse_query(query: str) -> Query:
    """
    Parse a natural language question into a structured Query.

    Never raises: unknown wording degrades to a get_metric query over all metrics.

    Args:
        query: The user's question

    Returns:
        The structured Query
    """
    text = (query or "").lower()
    result = Query()

    # Metrics
    detected = detect_metrics(text)
    metrics = list(detected) or list(KNOWN_METRICS)

    # Calculation
    result.calculate = build_calculation(text, detected)
    for metric in _calculation_metrics(result.calculate):
        if metric not in metrics:
            metrics.append(metric)
    result.metrics = metrics

    # Subject filter
    result.filters = QueryFilters(subject=extract_subject_filter(text))

    # Ranking. Precedence: top+bottom > compare > bottom > top
    has_top = _has_word(text, TOP_WORDS)
    has_bottom = _has_word(text, BOTTOM_WORDS)
    has_compare = COMPARE_WORD in text
    combined = _has_word(text, COMBINED_TOP_WORDS) and _has_word(text, COMBINED_BOTTOM_WORDS)

    sort_by = choose_sort_metric(text)
    if isinstance(result.calculate, RatioCalculation):
        sort_by = CALCULATED_RATIO_KEY

    if combined:
        result.intent = Intent.COMPARE_TOP_BOTTOM
        result.sort = SortSpec(by=sort_by, order=SortOrder.DESC)
        result.top_bottom_limit = _first_int(text, COMBINED_LIMIT_PATTERNS) or DEFAULT_COMBINED_LIMIT
    elif has_compare:
        result.intent = Intent.COMPARE
        result.limit = DEFAULT_COMPARE_LIMIT
        if has_bottom:
            result.sort = SortSpec(by=sort_by, order=SortOrder.ASC)
        elif has_top:
            result.sort = SortSpec(by=sort_by, order=SortOrder.DESC)
    elif has_bottom:
        result.intent = Intent.FIND_BOTTOM
        result.sort = SortSpec(by=sort_by, order=SortOrder.ASC)
        result.limit = _first_int(text, BOTTOM_LIMIT_PATTERNS) or DEFAULT_TOP_BOTTOM_LIMIT
    elif has_top:
        result.intent = Intent.FIND_TOP
        result.sort = SortSpec(by=sort_by, order=SortOrder.DESC)
        result.limit = _first_int(text, TOP_LIMIT_PATTERNS) or DEFAULT_TOP_BOTTOM_LIMIT

    # "all reps" style phrasing overrides any smaller limit
    if any(phrase in text for phrase in INCLUDE_ALL_PHRASES):
        result.include_all = True
        result.limit = INCLUDE_ALL_LIMIT

    logger.info(f"Parsed query: {result}")
    return result
