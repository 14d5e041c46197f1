"""
Data transforms: turn in-memory record lists into DataFrames for the
aggregation engine, chart pivots and the archive table.
"""

import logging
import math

import pandas as pd

from .config import RECORDS_PER_PAGE
from .models import PersonnelRecord, ProductionRecord

logger = logging.getLogger(__name__)

PRODUCTION_COLUMNS = ["id", "field", "amount", "condensate", "water", "date"]
PERSONNEL_COLUMNS = [
    "id", "date", "officers", "employees", "approved_officers", "approved_employees",
]


def production_frame(records: list[ProductionRecord]) -> pd.DataFrame:
    """Build a production DataFrame ordered by date, then field.

    Dates stay ISO strings; they sort correctly as text and are the keys the
    UI passes around.
    """
    if not records:
        return pd.DataFrame(columns=PRODUCTION_COLUMNS)

    df = pd.DataFrame([r.to_row() for r in records], columns=PRODUCTION_COLUMNS)
    for col in ("amount", "condensate", "water"):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)
    return df.sort_values(["date", "field"], kind="stable").reset_index(drop=True)


def personnel_frame(records: list[PersonnelRecord]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=PERSONNEL_COLUMNS)

    df = pd.DataFrame([r.to_row() for r in records], columns=PERSONNEL_COLUMNS)
    return df.sort_values("date", kind="stable").reset_index(drop=True)


def build_trend_pivot(df: pd.DataFrame, window_dates: list[str]) -> pd.DataFrame:
    """Pivot production into one row per window date and one column per field.

    Every field seen anywhere in the history gets a column; a field with no
    record on a window date is plotted as 0.

    Returns
    -------
    DataFrame with a 'date' column followed by one column per field.
    """
    fields = sorted(df["field"].unique().tolist()) if not df.empty else []
    if not window_dates:
        return pd.DataFrame(columns=["date", *fields])

    in_window = df[df["date"].isin(window_dates)]
    pivot = (
        in_window.pivot_table(index="date", columns="field", values="amount", aggfunc="sum")
        .reindex(index=window_dates, columns=fields)
        .fillna(0.0)
    )
    pivot.columns.name = None
    return pivot.rename_axis("date").reset_index()


def sort_for_archive(df: pd.DataFrame) -> pd.DataFrame:
    """Newest date first; ties keep their existing order."""
    if df.empty:
        return df
    return df.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)


def page_count(n_rows: int, per_page: int = RECORDS_PER_PAGE) -> int:
    return max(1, math.ceil(n_rows / per_page))


def paginate(df: pd.DataFrame, page: int, per_page: int = RECORDS_PER_PAGE) -> tuple[pd.DataFrame, int]:
    """Return (rows_for_page, clamped_page). Pages are 1-based."""
    total = page_count(len(df), per_page)
    page = min(max(1, page), total)
    start = (page - 1) * per_page
    return df.iloc[start:start + per_page].reset_index(drop=True), page


def page_after_delete(rows_on_page: int, page: int) -> int:
    """Step back a page when the last row on a non-first page is deleted."""
    if rows_on_page == 1 and page > 1:
        return page - 1
    return page
