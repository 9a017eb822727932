# ------------------------------
# Services's utils
# ------------------------------

import math
import logging
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

def to_number(value: Any) -> Optional[float]:
    '''
      Convert a cell value to a float.
      Returns None for missing, blank, NaN or non-numeric values. "1,234" -> 1234.0
    '''
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError:
        return None
    return None if math.isnan(number) else number

def round_half_up(value: float, decimals: int) -> float:
    '''
      Round using Decimal for stable half-up rounding (2.00005 -> 2.0001 at 4 places).
    '''
    q = Decimal(10) ** -decimals
    try:
        return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return value

def coerce_numeric_columns(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    '''
      Cast the given columns to numbers.

      Args:
          df: DataFrame to coerce
          columns: columns holding metric values

      Returns:
          DataFrame with numeric columns, non-numeric cells become NaN
    '''
    missing = set(columns) - set(df.columns)
    if missing:
        logger.warning(f"Missing expected columns: {missing}")

    for col in columns:
        if col not in df.columns:
            continue
        raw = df[col]
        cleaned = raw.astype(str).str.replace(",", "", regex=False).str.strip()
        df[col] = pd.to_numeric(cleaned, errors="coerce")

        dropped = int(raw.notna().sum() - df[col].notna().sum())
        if dropped:
            logger.warning(f"Column {col}: {dropped} non-numeric values treated as missing")
    return df

def frame_to_records(df: pd.DataFrame) -> List[dict]:
    '''
      DataFrame -> list of dicts, with NaN turned into None.
    '''
    return df.astype(object).where(pd.notna(df), None).to_dict(orient="records")
