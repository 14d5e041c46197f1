"""
Loader for the daily field production report workbook.

Source: operator's daily report (.xlsx, or legacy .xls)

Structure of the first sheet:
    REPORT_DATE_CELL (C3): the report date, as a native date, a serial day count
        or a date string.
    Rows 7-11, one per field (see config.FIELD_CELL_MAP):
        column C = gas volume (MCF)
        column D = condensate (BBL)
        column E = water (BBL)

A field is imported only when its gas reading is strictly positive. Fields
that already have a record for the report date are skipped, never
overwritten. Each record is committed on its own; a failed commit is
reported and the remaining fields are still processed.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

import openpyxl
import pandas as pd

from ..config import FIELD_CELL_MAP, REPORT_DATE_CELL
from ..exceptions import (
    DateCellEmptyError,
    GasProError,
    InvalidDateFormatError,
    NoValidDataError,
    WorkbookParseError,
)
from ..models import ProductionRecord
from .utils import CellReader, frame_reader, is_blank, is_numeric_cell, normalise_date, safe_float, sheet_reader

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

READING_COLUMNS = ["field", "amount", "condensate", "water", "gas_present"]


@dataclass
class ImportReport:
    """Outcome of one workbook import."""
    report_date: str
    created: list[ProductionRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def status(self) -> str:
        """'created', 'already_exists' or 'failed'."""
        if self.created:
            return "created"
        if self.skipped and not self.failed:
            return "already_exists"
        return "failed"

    @property
    def message(self) -> str:
        if self.status == "already_exists":
            return (
                f"Data for {self.report_date} already exists "
                f"({len(self.skipped)} field(s) skipped as duplicates)."
            )
        parts = [f"Imported {len(self.created)} record(s) for {self.report_date}"]
        if self.skipped:
            parts.append(f"{len(self.skipped)} duplicate(s) skipped")
        if self.failed:
            parts.append(f"{len(self.failed)} failed: " + "; ".join(f"{f} ({m})" for f, m in self.failed))
        return ", ".join(parts) + "."


# ---------------------------------------------------------------------------
# Workbook reading
# ---------------------------------------------------------------------------

def open_first_sheet(content: bytes) -> CellReader:
    """Open the first sheet of a workbook buffer and return a cell reader.

    .xlsx is read with openpyxl (native date cells stay datetimes); legacy
    .xls goes through pandas with the xlrd engine.
    """
    if not content:
        raise WorkbookParseError("The uploaded file is empty.")

    if content.startswith(_OLE2_MAGIC):
        try:
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, engine="xlrd")
        except Exception as e:
            logger.exception("Failed to read legacy workbook")
            raise WorkbookParseError(f"Could not read the workbook: {e}") from e
        return frame_reader(df)

    if not content.startswith(_ZIP_MAGIC):
        raise WorkbookParseError("The file is not an Excel workbook (.xlsx or .xls).")

    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), data_only=True, read_only=False)
    except Exception as e:
        logger.exception("Failed to open workbook")
        raise WorkbookParseError(f"Could not read the workbook: {e}") from e

    if not wb.worksheets:
        wb.close()
        raise WorkbookParseError("The workbook has no sheets.")

    return sheet_reader(wb.worksheets[0])


def resolve_report_date(raw) -> str:
    """Resolve the report date cell to an ISO date string.

    Raises DateCellEmptyError for an empty cell and InvalidDateFormatError
    for anything that is not a calendar date. No partial inference.
    """
    if is_blank(raw):
        raise DateCellEmptyError(f"Report date cell {REPORT_DATE_CELL} is empty.")
    ts = normalise_date(raw)
    if ts is None:
        raise InvalidDateFormatError(
            f"Invalid date format in cell {REPORT_DATE_CELL}: {raw!r}."
        )
    return ts.date().isoformat()


def load_daily_report(content: bytes) -> tuple[str, pd.DataFrame]:
    """Read the report date and per-field readings from a workbook buffer.

    Returns
    -------
    (report_date, readings) where readings has columns:
        field, amount, condensate, water, gas_present
    Missing or non-numeric volume cells read as 0.
    """
    read = open_first_sheet(content)
    report_date = resolve_report_date(read(REPORT_DATE_CELL))

    rows = []
    for mapping in FIELD_CELL_MAP:
        gas_raw = read(mapping["gas"])
        rows.append({
            "field": mapping["field"],
            "amount": safe_float(gas_raw),
            "condensate": safe_float(read(mapping["condensate"])),
            "water": safe_float(read(mapping["water"])),
            "gas_present": is_numeric_cell(gas_raw),
        })

    df = pd.DataFrame(rows, columns=READING_COLUMNS)
    logger.info("Read %d field readings for %s", len(df), report_date)
    return report_date, df


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def qualifying_readings(readings: pd.DataFrame, import_zero_gas: bool = False) -> pd.DataFrame:
    """Readings that gate into an import.

    By default only a strictly positive gas volume qualifies; shut-in or
    maintenance fields reporting zero are left out. With import_zero_gas a
    gas cell holding an explicit 0 also qualifies.
    """
    if import_zero_gas:
        mask = readings["gas_present"] & (readings["amount"] >= 0)
    else:
        mask = readings["amount"] > 0
    return readings[mask].reset_index(drop=True)


def import_daily_report(
    content: bytes,
    existing: Iterable[ProductionRecord],
    create: Callable[[dict], ProductionRecord],
    import_zero_gas: bool = False,
) -> ImportReport:
    """Import a daily report workbook.

    Parameters
    ----------
    content : Raw workbook bytes.
    existing : Records already in the store, used for duplicate detection.
    create : Commits one record payload and returns the stored record.
        Domain errors it raises are recorded against that field only.
    import_zero_gas : Also import fields whose gas cell holds an explicit 0.

    Raises
    ------
    WorkbookParseError, DateCellEmptyError, InvalidDateFormatError
        The workbook could not be read; nothing was committed.
    NoValidDataError
        No field had a qualifying gas reading.
    """
    report_date, readings = load_daily_report(content)
    candidates = qualifying_readings(readings, import_zero_gas)
    if candidates.empty:
        raise NoValidDataError(f"No valid production data found for {report_date}.")

    seen = {(r.field, r.date) for r in existing}
    report = ImportReport(report_date=report_date)

    for row in candidates.itertuples(index=False):
        key = (row.field, report_date)
        if key in seen:
            report.skipped.append(row.field)
            continue

        payload = {
            "field": row.field,
            "amount": float(row.amount),
            "condensate": float(row.condensate),
            "water": float(row.water),
            "date": report_date,
        }
        try:
            record = create(payload)
        except GasProError as e:
            logger.error("Import of %s for %s failed: %s", row.field, report_date, e)
            report.failed.append((row.field, str(e)))
            continue

        seen.add(key)
        report.created.append(record)

    logger.info(
        "Imported %d record(s) for %s; %d duplicate(s), %d failure(s)",
        len(report.created), report_date, len(report.skipped), len(report.failed),
    )
    return report
