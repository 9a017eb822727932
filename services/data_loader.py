# ------------------------------
# Module: data_loader.py
# Description: Module loads the dealer analytics export into a Dataset.
# ------------------------------

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from services.constants import (
    LOG_LEVEL,
    DATA_FILE_PATH,
    SUBJECT_HEADER_MARKER,
    SUBJECT_COLUMN,
    SUBJECT_COMMENT_PREFIX,
)
from services.dataset import Dataset
from services.utils import coerce_numeric_columns

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def find_header_line(lines: List[str], marker: str = SUBJECT_HEADER_MARKER) -> int:
    '''
        Exports start with a free-form preamble. The header is the first line
        holding the marker cell. Falls back to the first line.
    '''
    for i, line in enumerate(lines):
        if marker in line:
            return i
    logger.warning(f"Header marker '{marker}' not found, using first line as header")
    return 0

def load_dataset(file_path: Union[str, Path] = DATA_FILE_PATH,
                 column_aliases: Optional[Dict[str, str]] = None) -> Dataset:
    """
    Load a dealer analytics CSV export.

    Args:
        file_path: Path to the CSV file
        column_aliases: Optional raw header -> canonical metric mappings

    Returns:
        Dataset with one row per dealer and numeric metric columns

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    # :::::: Data Loading :::::: #

    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Dataset file not found: {file_path}")

    lines = file_path.read_text(encoding="utf-8-sig").splitlines()
    header_line = find_header_line(lines)
    logger.info(f"Loading {file_path} with header on line {header_line + 1}")

    df = pd.read_csv(io.StringIO("\n".join(lines[header_line:])), dtype=str, skip_blank_lines=True)

    # :::::: Data Cleaning :::::: #

    df.columns = [str(c).strip() for c in df.columns]

    # Drop padding columns the export sometimes adds
    padding = [c for c in df.columns if c.startswith("Unnamed") and df[c].isna().all()]
    df = df.drop(columns=padding)

    subject_col = next((c for c in df.columns if SUBJECT_HEADER_MARKER in c), df.columns[0])
    df = df.rename(columns={subject_col: SUBJECT_COLUMN})

    # Remove blank subjects, comment lines and repeated header rows
    subjects = df[SUBJECT_COLUMN].fillna("").astype(str).str.strip()
    mask = (
        (subjects == "") |
        subjects.str.startswith(SUBJECT_COMMENT_PREFIX) |
        subjects.str.contains(SUBJECT_HEADER_MARKER, regex=False)
    )
    df = df[~mask].copy()
    df[SUBJECT_COLUMN] = subjects[~mask]

    metric_columns = [c for c in df.columns if c != SUBJECT_COLUMN]
    df = coerce_numeric_columns(df, metric_columns)

    logger.info(f"Loaded {len(df)} dealers with {len(metric_columns)} metrics from {file_path}")

    return Dataset.from_frame(df.reset_index(drop=True), column_aliases=column_aliases)

def get_metadata(dataset: Dataset) -> Dict[str, List[str]]:
    '''
        Metrics and dimensions available in a dataset.
    '''
    if len(dataset) == 0:
        return {"metrics": [], "dimensions": []}
    return {
        "metrics": list(dataset.metric_columns),
        "dimensions": [dataset.subject_column],
    }
