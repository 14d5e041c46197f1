"""
Record types and change events.

Rows from the backend, the local cache and the change feed all pass through
the ``from_row`` / ``parse_change_payload`` functions here before they reach
application state.
"""

import logging
import math
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

import pandas as pd

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    PRODUCTION = "production"
    PERSONNEL = "personnel"


class ChangeOp(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def normalise_iso_date(val: Any) -> str:
    """Return a ``YYYY-MM-DD`` string for a date-like value.

    Raises ValidationError when the value is not a calendar date.
    """
    if isinstance(val, (datetime, pd.Timestamp)):
        return val.date().isoformat()
    if isinstance(val, date):
        return val.isoformat()
    if isinstance(val, str) and val.strip():
        try:
            return pd.Timestamp(val.strip()).date().isoformat()
        except (ValueError, TypeError):
            pass
    raise ValidationError(f"Invalid date: {val!r}")


def _number(row: dict, key: str, default: float | None = 0.0) -> float | None:
    val = row.get(key)
    if val is None or val == "":
        return default
    try:
        number = float(val)
    except (TypeError, ValueError):
        raise ValidationError(f"Field '{key}' must be numeric, got {val!r}")
    if not math.isfinite(number):
        raise ValidationError(f"Field '{key}' must be a finite number, got {val!r}")
    return number


@dataclass(frozen=True)
class ProductionRecord:
    id: str
    field: str
    amount: float  # MCF
    condensate: float = 0.0  # BBL
    water: float = 0.0  # BBL
    date: str = ""

    @classmethod
    def from_row(cls, row: dict) -> "ProductionRecord":
        if not isinstance(row, dict):
            raise ValidationError(f"Production row must be a mapping, got {type(row).__name__}")
        if row.get("id") in (None, ""):
            raise ValidationError("Production row has no id")
        field_name = str(row.get("field") or "").strip()
        if not field_name:
            raise ValidationError("Production row has no field")
        return cls(
            id=str(row["id"]),
            field=field_name,
            amount=_number(row, "amount"),
            condensate=_number(row, "condensate"),
            water=_number(row, "water"),
            date=normalise_iso_date(row.get("date")),
        )

    def to_row(self) -> dict:
        return asdict(self)

    def payload(self) -> dict:
        """Row without the id, as sent on create/update."""
        row = asdict(self)
        row.pop("id")
        return row

    def with_changes(self, **changes) -> "ProductionRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class PersonnelRecord:
    id: str
    date: str
    officers: int
    employees: int
    approved_officers: int | None = None
    approved_employees: int | None = None

    @classmethod
    def from_row(cls, row: dict) -> "PersonnelRecord":
        if not isinstance(row, dict):
            raise ValidationError(f"Personnel row must be a mapping, got {type(row).__name__}")
        if row.get("id") in (None, ""):
            raise ValidationError("Personnel row has no id")
        approved_officers = _number(row, "approved_officers", default=None)
        approved_employees = _number(row, "approved_employees", default=None)
        return cls(
            id=str(row["id"]),
            date=normalise_iso_date(row.get("date")),
            officers=int(_number(row, "officers")),
            employees=int(_number(row, "employees")),
            approved_officers=int(approved_officers) if approved_officers is not None else None,
            approved_employees=int(approved_employees) if approved_employees is not None else None,
        )

    def to_row(self) -> dict:
        return asdict(self)

    def payload(self) -> dict:
        row = asdict(self)
        row.pop("id")
        return row

    def with_changes(self, **changes) -> "PersonnelRecord":
        return replace(self, **changes)


RECORD_TYPES = {
    RecordKind.PRODUCTION: ProductionRecord,
    RecordKind.PERSONNEL: PersonnelRecord,
}


@dataclass(frozen=True)
class ChangeEvent:
    """One validated change-feed event.

    ``record`` holds the new row for insert/update and the old row for
    delete. Delete events may carry only an id, in which case ``record`` is
    None and ``record_id`` identifies the removed row.
    """
    kind: RecordKind
    op: ChangeOp
    record_id: str
    record: ProductionRecord | PersonnelRecord | None = None


_OP_ALIASES = {
    "insert": ChangeOp.INSERT,
    "update": ChangeOp.UPDATE,
    "delete": ChangeOp.DELETE,
}


def parse_change_payload(kind: RecordKind | str, payload: dict) -> ChangeEvent:
    """Validate a raw change-feed payload into a ChangeEvent.

    Accepts both the flat ``{eventType, new, old}`` shape and the nested
    ``{data: {type, record, old_record}}`` shape delivered by the realtime
    client.
    """
    try:
        kind = RecordKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown record kind: {kind!r}")
    if not isinstance(payload, dict):
        raise ValidationError("Change payload must be a mapping")

    body = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    raw_op = body.get("eventType") or body.get("type") or body.get("op") or ""
    op = _OP_ALIASES.get(str(raw_op).lower())
    if op is None:
        raise ValidationError(f"Unknown change operation: {raw_op!r}")

    new_row = body.get("record") or body.get("new") or body.get("new_row") or {}
    old_row = body.get("old_record") or body.get("old") or body.get("old_row") or {}
    record_type = RECORD_TYPES[kind]

    if op is ChangeOp.DELETE:
        record_id = old_row.get("id")
        if record_id in (None, ""):
            raise ValidationError("Delete event carries no id")
        record = None
        # Replica identity "full" ships the whole old row; default identity only the key
        if len(old_row) > 1:
            try:
                record = record_type.from_row(old_row)
            except ValidationError:
                logger.debug("Partial old row on delete event for id %s", record_id)
        return ChangeEvent(kind=kind, op=op, record_id=str(record_id), record=record)

    record = record_type.from_row(new_row)
    return ChangeEvent(kind=kind, op=op, record_id=record.id, record=record)
