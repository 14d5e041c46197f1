"""
Application state: the in-memory record collections, the date navigator
and UI flags, mutated only through the actions defined here.

Every write goes to the store first; the in-memory copy changes only after
the store accepted it.
"""

import logging

import pandas as pd

from .exceptions import DuplicateRecordError, StoreError, ValidationError
from .loaders.daily_report import ImportReport, import_daily_report
from .models import (
    ChangeEvent,
    ChangeOp,
    PersonnelRecord,
    ProductionRecord,
    RecordKind,
    normalise_iso_date,
)
from .navigation import DateNavigator
from .simulator import generate_personnel_history, generate_production_history
from .store import LocalCacheBackend, RecordStore
from .transforms import personnel_frame, production_frame

logger = logging.getLogger(__name__)


def _parse_number(value, label: str, integer: bool = False) -> float | int:
    if value is None or (isinstance(value, str) and not value.strip()) or isinstance(value, bool):
        raise ValidationError(f"Please enter a valid numeric {label}.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Please enter a valid numeric {label}.")
    if number != number:
        raise ValidationError(f"Please enter a valid numeric {label}.")
    if number < 0:
        raise ValidationError(f"The {label} cannot be negative.")
    return int(number) if integer else number


class AppState:
    """Single source of truth for rendering between sync events.

    status is "local" (no backend configured), "online" (backend loaded) or
    "offline" (backend configured but unreachable at load; the local cache
    is shown read-through and writes still target the backend).
    """

    def __init__(
        self,
        store: RecordStore,
        offline_cache: LocalCacheBackend | None = None,
        dark_mode: bool = True,
        admin_allowed: bool = False,
    ):
        self.store = store
        self.offline_cache = offline_cache
        self.production: list[ProductionRecord] = []
        self.personnel: list[PersonnelRecord] = []
        self.status = "loading"
        self.navigator = DateNavigator()
        self.dark_mode = dark_mode
        self.admin_allowed = admin_allowed
        self.version = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self, seed_if_empty: bool = True) -> str:
        if not self.store.is_configured:
            backend = self.store.backend
            if seed_if_empty and isinstance(backend, LocalCacheBackend):
                self._seed_local(backend)
            self._replace(
                self.store.get_all(RecordKind.PRODUCTION),
                self.store.get_all(RecordKind.PERSONNEL),
            )
            self.status = "local"
            return self.status

        try:
            production = self.store.get_all(RecordKind.PRODUCTION)
            personnel = self.store.get_all(RecordKind.PERSONNEL)
        except StoreError as e:
            logger.error("Backend load failed, showing local cache: %s", e)
            self.status = "offline"
            if self.offline_cache is not None:
                cache = RecordStore(self.offline_cache)
                self._replace(cache.get_all(RecordKind.PRODUCTION), cache.get_all(RecordKind.PERSONNEL))
            else:
                self._replace([], [])
            return self.status

        self._replace(production, personnel)
        self.status = "online"
        logger.info("Loaded %d production and %d personnel records", len(production), len(personnel))
        return self.status

    def _seed_local(self, backend: LocalCacheBackend) -> None:
        if not backend.has_slot(RecordKind.PRODUCTION):
            logger.info("Seeding local cache with synthetic production history")
            backend.replace_all(RecordKind.PRODUCTION, generate_production_history())
        if not backend.has_slot(RecordKind.PERSONNEL):
            logger.info("Seeding local cache with synthetic personnel history")
            backend.replace_all(RecordKind.PERSONNEL, generate_personnel_history())

    def _replace(self, production: list, personnel: list) -> None:
        self.production = list(production)
        self.personnel = list(personnel)
        self._changed()

    def _changed(self) -> None:
        self.version += 1
        self.navigator.sync(self.navigation_dates)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def production_df(self) -> pd.DataFrame:
        return production_frame(self.production)

    @property
    def personnel_df(self) -> pd.DataFrame:
        return personnel_frame(self.personnel)

    @property
    def navigation_dates(self) -> list[str]:
        """Distinct dates with any record of either kind, ascending."""
        dates = {r.date for r in self.production} | {r.date for r in self.personnel}
        return sorted(dates)

    @property
    def selected_date(self) -> str | None:
        return self.navigator.selected

    # ------------------------------------------------------------------
    # Production actions
    # ------------------------------------------------------------------
    def _check_production_duplicate(self, field: str, date: str, exclude_id: str | None = None) -> None:
        for r in self.production:
            if r.field == field and r.date == date and r.id != exclude_id:
                raise DuplicateRecordError(
                    RecordKind.PRODUCTION.value,
                    (field, date),
                    f'Data for "{field}" on {date} already exists. '
                    "Please edit that record or use a different date.",
                )

    def _production_payload(self, field, amount, date, condensate=0.0, water=0.0) -> dict:
        field = str(field or "").strip()
        if not field:
            raise ValidationError("Please choose a gas field.")
        return {
            "field": field,
            "amount": _parse_number(amount, "amount"),
            "condensate": _parse_number(condensate if condensate not in (None, "") else 0, "condensate"),
            "water": _parse_number(water if water not in (None, "") else 0, "water"),
            "date": normalise_iso_date(date),
        }

    def add_production(self, field, amount, date, condensate=0.0, water=0.0) -> ProductionRecord:
        payload = self._production_payload(field, amount, date, condensate, water)
        self._check_production_duplicate(payload["field"], payload["date"])
        record = self.store.create(RecordKind.PRODUCTION, payload)
        self.production.insert(0, record)
        self._changed()
        return record

    def update_production(self, record_id: str, field, amount, date, condensate=None, water=None) -> ProductionRecord:
        """Update a production record. Omitted condensate or water keep their stored values."""
        current = next((r for r in self.production if r.id == record_id), None)
        if condensate is None:
            condensate = current.condensate if current else 0.0
        if water is None:
            water = current.water if current else 0.0
        payload = self._production_payload(field, amount, date, condensate, water)
        self._check_production_duplicate(payload["field"], payload["date"], exclude_id=record_id)
        record = self.store.update(RecordKind.PRODUCTION, record_id, payload)
        self.production = [record if r.id == record_id else r for r in self.production]
        self._changed()
        return record

    def delete_production(self, record_id: str) -> None:
        self.store.delete(RecordKind.PRODUCTION, record_id)
        self.production = [r for r in self.production if r.id != record_id]
        self._changed()

    # ------------------------------------------------------------------
    # Personnel actions
    # ------------------------------------------------------------------
    def _check_personnel_duplicate(self, date: str, exclude_id: str | None = None) -> None:
        for r in self.personnel:
            if r.date == date and r.id != exclude_id:
                raise DuplicateRecordError(
                    RecordKind.PERSONNEL.value,
                    (date,),
                    f"Personnel data for {date} already exists. Please edit that record instead.",
                )

    def _personnel_payload(self, date, officers, employees, approved_officers=None, approved_employees=None) -> dict:
        return {
            "date": normalise_iso_date(date),
            "officers": _parse_number(officers, "officer count", integer=True),
            "employees": _parse_number(employees, "employee count", integer=True),
            "approved_officers": (
                None if approved_officers in (None, "")
                else _parse_number(approved_officers, "approved officer count", integer=True)
            ),
            "approved_employees": (
                None if approved_employees in (None, "")
                else _parse_number(approved_employees, "approved employee count", integer=True)
            ),
        }

    def add_personnel(self, date, officers, employees, approved_officers=None, approved_employees=None) -> PersonnelRecord:
        payload = self._personnel_payload(date, officers, employees, approved_officers, approved_employees)
        self._check_personnel_duplicate(payload["date"])
        record = self.store.create(RecordKind.PERSONNEL, payload)
        self.personnel.insert(0, record)
        self._changed()
        return record

    def update_personnel(self, record_id: str, date, officers, employees,
                         approved_officers=None, approved_employees=None) -> PersonnelRecord:
        payload = self._personnel_payload(date, officers, employees, approved_officers, approved_employees)
        self._check_personnel_duplicate(payload["date"], exclude_id=record_id)
        record = self.store.update(RecordKind.PERSONNEL, record_id, payload)
        self.personnel = [record if r.id == record_id else r for r in self.personnel]
        self._changed()
        return record

    def delete_personnel(self, record_id: str) -> None:
        self.store.delete(RecordKind.PERSONNEL, record_id)
        self.personnel = [r for r in self.personnel if r.id != record_id]
        self._changed()

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------
    def import_workbook(self, content: bytes, import_zero_gas: bool = False) -> ImportReport:
        """Import a daily report; created records join the collection as they commit."""
        def create(payload: dict) -> ProductionRecord:
            record = self.store.create(RecordKind.PRODUCTION, payload)
            self.production.insert(0, record)
            return record

        try:
            report = import_daily_report(content, list(self.production), create, import_zero_gas)
        finally:
            self._changed()
        return report

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------
    def apply_change(self, event: ChangeEvent) -> None:
        """Merge one validated change-feed event into the collections."""
        attr = "production" if event.kind is RecordKind.PRODUCTION else "personnel"
        records = getattr(self, attr)

        if event.op is ChangeOp.DELETE:
            records = [r for r in records if r.id != event.record_id]
        elif any(r.id == event.record_id for r in records):
            records = [event.record if r.id == event.record_id else r for r in records]
        else:
            records = [event.record, *records]

        setattr(self, attr, records)

    def apply_changes(self, events: list[ChangeEvent]) -> int:
        for event in events:
            self.apply_change(event)
        if events:
            self._changed()
        return len(events)
