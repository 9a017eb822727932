# ------------------------------
# Module: metric_resolver.py
# Description: Maps loose metric wording onto canonical metric names
# ------------------------------

import re
import logging
from typing import Dict, List, Optional

from services.constants import KNOWN_METRICS, METRIC_PHRASES, METRIC_DISPLAY_NAMES

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS_RE = re.compile(r"[_\-\s]+")
_PATH_SEPARATORS_RE = re.compile(r"[>:]")

MIN_REVERSE_MATCH_LENGTH = 3

def normalize_label(text: str) -> str:
    '''
      Normalize a header or phrase for matching.
      "creditCard" -> "credit card", "Unique_Visitors" -> "unique visitors"
    '''
    if text is None:
        return ""
    text = _CAMEL_RE.sub(" ", str(text))
    return _SEPARATORS_RE.sub(" ", text).strip().lower()

def display_name(metric: str) -> str:
    '''
      Get the human friendly name for a metric.
    '''
    return METRIC_DISPLAY_NAMES.get(metric, metric)

class MetricResolver:
    """Resolves candidate text to one of the known canonical metric names."""

    def __init__(self, known_metrics: Optional[List[str]] = None, phrases: Optional[Dict[str, str]] = None):
        self.known_metrics = list(known_metrics if known_metrics is not None else KNOWN_METRICS)
        self.phrases = dict(phrases if phrases is not None else METRIC_PHRASES)

        # Longest phrases first so "credit card additions" beats "additions"
        self._phrases_by_length = sorted(self.phrases, key=len, reverse=True)

    def resolve(self, candidate_text: str) -> Optional[str]:
        """
        Resolve a candidate phrase to a canonical metric name.

        Priority (first match wins):
        1. exact case-insensitive match on a known metric
        2. substring containment in either direction
        3. phrase dictionary (exact phrase, then longest contained phrase)

        Returns:
            The canonical metric name, or None if nothing matched
        """
        raw = (candidate_text or "").strip().lower()
        if not raw:
            return None
        candidate = normalize_label(candidate_text)

        # 1. Exact
        for metric in self.known_metrics:
            if raw == metric.lower() or candidate == normalize_label(metric):
                return metric

        # 2. Containment, either direction. The name side only counts whole path
        # segments ("visit" -> "visits") so "sales" doesn't land on "mobility_sales".
        for metric in self.known_metrics:
            name = metric.lower()
            if name in raw:
                return metric
            if len(raw) >= MIN_REVERSE_MATCH_LENGTH and any(
                segment.startswith(raw) for segment in _PATH_SEPARATORS_RE.split(name)
            ):
                return metric

        # 3. Phrase dictionary
        if candidate in self.phrases:
            return self.phrases[candidate]
        for phrase in self._phrases_by_length:
            if phrase in candidate:
                return self.phrases[phrase]

        logger.debug(f"No metric matched for '{candidate_text}'")
        return None
