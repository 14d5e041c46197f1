"""
KPI computation functions — pure functions with no side effects.

Provides daily totals, trailing means, field distribution shares, the
moving trend window and workforce-versus-organogram deltas. Everything is
recomputed from the current snapshot on each render; nothing here holds
state.
"""

import bisect
import logging

import pandas as pd

from .config import (
    DEFAULT_APPROVED_EMPLOYEES,
    DEFAULT_APPROVED_OFFICERS,
    OPTIMAL_OUTPUT_THRESHOLD,
    TREND_WINDOW_DAYS,
)

logger = logging.getLogger(__name__)


def available_dates(df: pd.DataFrame) -> list[str]:
    """Sorted distinct dates present in a record frame."""
    if df.empty:
        return []
    return sorted(df["date"].dropna().unique().tolist())


def latest_date(dates: list[str]) -> str | None:
    return dates[-1] if dates else None


def daily_totals(df: pd.DataFrame) -> pd.Series:
    """Sum of ``amount`` per date across all fields, indexed by date."""
    if df.empty:
        return pd.Series(dtype=float, name="amount")
    return df.groupby("date")["amount"].sum().sort_index()


def daily_total(df: pd.DataFrame, date: str) -> float:
    totals = daily_totals(df)
    return float(totals.get(date, 0.0))


def _window_end(dates: list[str], reference_date: str) -> int:
    """Index of the last date on or before reference_date, or -1."""
    return bisect.bisect_right(dates, reference_date) - 1


def trailing_window(dates: list[str], reference_date: str | None, n: int) -> list[str]:
    """The n most recent dates up to and including reference_date."""
    if not dates or reference_date is None or n <= 0:
        return []
    end = _window_end(dates, reference_date)
    if end < 0:
        return []
    start = max(0, end - n + 1)
    return dates[start:end + 1]


def trailing_mean(
    totals: pd.Series,
    dates: list[str],
    reference_date: str | None,
    n: int,
) -> float:
    """Mean daily total over the trailing window of n dates.

    Divides by the number of dates actually in the window, not by n, so a
    short history is averaged over what exists instead of padded with zeros.
    """
    window = trailing_window(dates, reference_date, n)
    if not window:
        return 0.0
    return float(sum(totals.get(d, 0.0) for d in window) / len(window))


def trend_window(dates: list[str], viewed_date: str, n: int = TREND_WINDOW_DAYS) -> list[str]:
    """Dates for the historical trend chart, anchored to the viewed date.

    Unlike the headline trailing means (anchored to the latest date in the
    system) this window moves with the viewed date. A viewed date with no
    data yields an empty window.
    """
    if viewed_date not in dates:
        return []
    idx = dates.index(viewed_date)
    return dates[max(0, idx - n + 1):idx + 1]


def day_records(df: pd.DataFrame, date: str) -> pd.DataFrame:
    if df.empty:
        return df
    return df[df["date"] == date].reset_index(drop=True)


def field_distribution(df: pd.DataFrame, date: str) -> pd.DataFrame:
    """Share of the day's total per field.

    Fields with zero or missing amount on the date are absent from the
    result rather than listed with a zero share.

    Returns
    -------
    DataFrame with columns: field, amount, share  (share in 0..1)
    """
    day = day_records(df, date)
    if day.empty:
        return pd.DataFrame(columns=["field", "amount", "share"])

    per_field = day.groupby("field", sort=False)["amount"].sum()
    per_field = per_field[per_field > 0]
    total = per_field.sum()
    if total <= 0:
        return pd.DataFrame(columns=["field", "amount", "share"])

    result = per_field.rename("amount").reset_index()
    result["share"] = result["amount"] / total
    return result


def field_comparison(df: pd.DataFrame, date: str) -> pd.DataFrame:
    """Per-field gas, condensate and water volumes on one date."""
    day = day_records(df, date)
    if day.empty:
        return pd.DataFrame(columns=["field", "amount", "condensate", "water"])
    return day[["field", "amount", "condensate", "water"]].reset_index(drop=True)


def classify_output(total: float, threshold: float = OPTIMAL_OUTPUT_THRESHOLD) -> str:
    """Return 'optimal' when the day total exceeds the threshold, else 'low'."""
    return "optimal" if total > threshold else "low"


# ---------------------------------------------------------------------------
# Workforce
# ---------------------------------------------------------------------------

def calc_delta(actual: float, approved: float) -> tuple[float, float | None]:
    """Return (actual - approved, actual / approved * 100).

    The percentage is None when approved == 0.
    """
    delta = actual - approved
    if approved == 0:
        return delta, None
    return delta, (actual / approved) * 100


def classify_delta(delta: float) -> str:
    """'Shortage' below target, 'Surplus' above it, 'At Target' on it."""
    if delta < 0:
        return "Shortage"
    if delta > 0:
        return "Surplus"
    return "At Target"


def latest_personnel(personnel_df: pd.DataFrame) -> dict | None:
    """Most recent personnel row regardless of the viewed production date."""
    if personnel_df.empty:
        return None
    return personnel_df.sort_values("date", kind="stable").iloc[-1].to_dict()


def workforce_summary(
    personnel_df: pd.DataFrame,
    default_officers: int = DEFAULT_APPROVED_OFFICERS,
    default_employees: int = DEFAULT_APPROVED_EMPLOYEES,
) -> dict:
    """Headcount against the organogram from the latest personnel record.

    Returns
    -------
    Dict with structure:
    {
        "date": "2024-05-03" | None,
        "officers":  {"actual": 50, "approved": 65, "delta": -15, "pct_of_target": 76.9, "status": "Shortage"},
        "employees": {...},
    }
    """
    row = latest_personnel(personnel_df)
    summary: dict = {"date": row["date"] if row else None}

    for role, default in (("officers", default_officers), ("employees", default_employees)):
        if row is None:
            summary[role] = {
                "actual": 0,
                "approved": default,
                "delta": 0,
                "pct_of_target": None,
                "status": "No Data",
            }
            continue

        actual = row.get(role)
        actual = 0 if pd.isna(actual) else int(actual)
        approved = row.get(f"approved_{role}")
        approved = default if approved is None or pd.isna(approved) else int(approved)

        delta, pct = calc_delta(actual, approved)
        summary[role] = {
            "actual": actual,
            "approved": approved,
            "delta": int(delta),
            "pct_of_target": pct,
            "status": classify_delta(delta),
        }

    return summary
