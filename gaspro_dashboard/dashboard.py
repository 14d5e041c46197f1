"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end. Each
function returns plain dicts or DataFrames suitable for rendering cards,
charts, and tables.
"""

import logging

import pandas as pd

from .config import FIELDS, RECORDS_PER_PAGE, TRAILING_WINDOWS
from .kpis import (
    available_dates,
    classify_output,
    daily_total,
    daily_totals,
    day_records,
    field_comparison,
    field_distribution,
    latest_date,
    trailing_mean,
    trend_window,
    workforce_summary,
)
from .transforms import build_trend_pivot, page_count, paginate, sort_for_archive

logger = logging.getLogger(__name__)


def get_dashboard_overview(
    production_df: pd.DataFrame,
    personnel_df: pd.DataFrame,
    selected_date: str | None,
    navigation_latest: str | None = None,
) -> dict:
    """Single entry point the app calls to populate the dashboard page.

    The headline trailing means are anchored to the latest production date
    in the system; the trend window and every field-level figure follow the
    selected date.

    navigation_latest is the newest date with any record (production or
    headcount). When given, is_historical compares against it instead of
    the latest production date.

    Returns
    -------
    Dict with structure:
    {
        "selected_date": "2024-05-03",
        "latest_date": "2024-05-03",
        "is_historical": False,
        "total": 1720.0,
        "output_status": "optimal",
        "trailing_means": {7: 1698.3, 30: 1650.2},
        "day_records": DataFrame,
        "distribution": DataFrame(field, amount, share),
        "comparison": DataFrame(field, amount, condensate, water),
        "trend": DataFrame(date, <field>...),
        "workforce": {...},
    }
    """
    dates = available_dates(production_df)
    latest = latest_date(dates)
    totals = daily_totals(production_df)

    if selected_date is None:
        selected_date = latest

    total = daily_total(production_df, selected_date) if selected_date else 0.0

    overview = {
        "selected_date": selected_date,
        "latest_date": latest,
        "is_historical": selected_date is not None and selected_date != (navigation_latest or latest),
        "total": total,
        "output_status": classify_output(total),
        "trailing_means": {n: trailing_mean(totals, dates, latest, n) for n in TRAILING_WINDOWS},
        "day_records": day_records(production_df, selected_date) if selected_date else production_df.iloc[0:0],
        "distribution": field_distribution(production_df, selected_date),
        "comparison": field_comparison(production_df, selected_date),
        "trend": build_trend_pivot(production_df, trend_window(dates, selected_date)),
        "workforce": workforce_summary(personnel_df),
    }

    if selected_date and overview["day_records"].empty:
        logger.info("No production records for %s", selected_date)

    return overview


def get_field_catalogue(production_df: pd.DataFrame, selected_date: str | None) -> pd.DataFrame:
    """Field catalogue with each field's volume on the selected date (0 when absent)."""
    catalogue = pd.DataFrame(FIELDS)
    day = day_records(production_df, selected_date) if selected_date else production_df.iloc[0:0]
    volumes = day.groupby("field")["amount"].sum() if not day.empty else pd.Series(dtype=float)
    catalogue["amount"] = catalogue["name"].map(volumes).fillna(0.0)
    return catalogue[["name", "location", "status", "amount"]]


def get_archive_page(
    records_df: pd.DataFrame,
    page: int,
    per_page: int = RECORDS_PER_PAGE,
) -> dict:
    """One page of the archive table, newest date first.

    Returns
    -------
    {"rows": DataFrame, "page": int, "pages": int, "total": int}
    """
    ordered = sort_for_archive(records_df)
    rows, page = paginate(ordered, page, per_page)
    pages = page_count(len(ordered), per_page)
    return {"rows": rows, "page": page, "pages": pages, "total": len(ordered)}
