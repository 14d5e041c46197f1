"""Data ingestion loaders for GasPro daily report workbooks."""

from .daily_report import ImportReport, import_daily_report, load_daily_report

__all__ = [
    "ImportReport",
    "import_daily_report",
    "load_daily_report",
]
