"""
Shared utilities for workbook ingestion: date normalisation, lenient
numeric coercion, cell access over openpyxl sheets and pandas frames.
"""

import logging
import math
from datetime import date, datetime
from typing import Any, Callable

import pandas as pd
from openpyxl.utils.cell import coordinate_to_tuple

from ..config import EXCEL_EPOCH, SECONDS_PER_DAY

logger = logging.getLogger(__name__)

CellReader = Callable[[str], Any]


def is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, str):
        return not val.strip()
    if isinstance(val, float) and math.isnan(val):
        return True
    return False


def excel_serial_to_timestamp(val: float) -> pd.Timestamp | None:
    """Convert a spreadsheet day count to a timestamp.

    Day counts use the 1899-12-30 epoch; fractional days carry the time of
    day (days x 86400 seconds).
    """
    if not math.isfinite(val):
        return None
    try:
        return pd.Timestamp(EXCEL_EPOCH) + pd.Timedelta(seconds=round(val * SECONDS_PER_DAY))
    except (ValueError, OverflowError):
        logger.warning("Could not convert serial number %s to date", val)
        return None


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Convert a native date, a serial day count or a date string to pd.Timestamp.

    Returns None for values that do not resolve to a calendar date.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, pd.Timestamp):
        return None if pd.isna(val) else val
    if isinstance(val, (datetime, date)):
        return pd.Timestamp(val)
    if isinstance(val, (int, float)):
        return excel_serial_to_timestamp(float(val))
    if isinstance(val, str):
        text = val.strip()
        if not text:
            return None
        try:
            ts = pd.Timestamp(text)
        except (ValueError, TypeError, OverflowError):
            logger.warning("Could not parse date value: %s", val)
            return None
        return None if pd.isna(ts) else ts
    logger.warning("Unsupported date value type %s", type(val).__name__)
    return None


def safe_float(val: Any, default: float = 0.0) -> float:
    """Coerce a cell value to float, falling back to ``default``.

    Strings are parsed leniently: surrounding space and thousands
    separators are ignored; anything else non-numeric gives the default.
    """
    if val is None or isinstance(val, bool):
        return default
    if isinstance(val, str):
        text = val.strip().replace(",", "")
        if not text or text.startswith("="):
            return default
        try:
            val = float(text)
        except ValueError:
            return default
    try:
        result = float(val)
    except (ValueError, TypeError):
        return default
    return result if math.isfinite(result) else default


def is_numeric_cell(val: Any) -> bool:
    """True when the cell holds something safe_float can read as a number."""
    if is_blank(val) or isinstance(val, bool):
        return False
    return not math.isnan(safe_float(val, default=math.nan))


def sheet_reader(ws) -> CellReader:
    """Cell reader over an openpyxl worksheet, addressed as 'C7'."""
    def read(ref: str) -> Any:
        return ws[ref].value
    return read


def frame_reader(df: pd.DataFrame) -> CellReader:
    """Cell reader over a header-less DataFrame, addressed as 'C7'.

    Cells beyond the frame's extent and NaN cells read as None.
    """
    def read(ref: str) -> Any:
        row, col = coordinate_to_tuple(ref)
        if row > df.shape[0] or col > df.shape[1]:
            return None
        val = df.iat[row - 1, col - 1]
        if isinstance(val, float) and math.isnan(val):
            return None
        if val is pd.NaT:
            return None
        return val
    return read
