import io
import uuid

import openpyxl
import pytest
import xlwt
from openpyxl.utils.cell import coordinate_to_tuple

from gaspro_dashboard.models import PersonnelRecord, ProductionRecord
from gaspro_dashboard.store import LocalCacheBackend, RecordStore


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable stand-in for a Supabase table query."""

    def __init__(self, client, table):
        self.client = client
        self.table_name = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.order_by = None

    def select(self, *_):
        self.action = "select"
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def _matches(self, row):
        return all(str(row.get(c)) == str(v) for c, v in self.filters)

    def execute(self):
        if self.action in self.client.fail_on:
            raise RuntimeError(f"{self.action} rejected by backend")
        rows = self.client.tables.setdefault(self.table_name, [])
        if self.action == "select":
            result = [dict(r) for r in rows]
            if self.order_by:
                col, desc = self.order_by
                result.sort(key=lambda r: r.get(col), reverse=desc)
            return FakeResult(result)
        if self.action == "insert":
            row = {"id": uuid.uuid4().hex[:8], **self.payload}
            rows.append(row)
            return FakeResult([dict(row)])
        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return FakeResult(updated)
        kept = [r for r in rows if not self._matches(r)]
        removed = [r for r in rows if self._matches(r)]
        self.client.tables[self.table_name] = kept
        return FakeResult(removed)


class FakeSupabaseClient:
    def __init__(self, tables=None, fail_on=()):
        self.tables = tables or {}
        self.fail_on = set(fail_on)

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def local_store(tmp_path):
    return RecordStore(LocalCacheBackend(tmp_path / "cache"))


@pytest.fixture
def sample_production():
    return [
        ProductionRecord(id="1", field="A", amount=100, date="2024-01-01"),
        ProductionRecord(id="2", field="B", amount=200, date="2024-01-01"),
        ProductionRecord(id="3", field="A", amount=150, date="2024-01-02"),
    ]


@pytest.fixture
def sample_personnel():
    return [
        PersonnelRecord(id="h1", date="2024-01-01", officers=60, employees=230),
        PersonnelRecord(id="h2", date="2024-01-05", officers=50, employees=250,
                        approved_officers=65, approved_employees=240),
    ]


@pytest.fixture
def make_workbook():
    """Build an .xlsx buffer: date goes in C3, cells maps refs to values."""
    def _make(report_date="2024-05-04", cells=None, extra_sheet_first=False):
        wb = openpyxl.Workbook()
        ws = wb.active
        if extra_sheet_first:
            ws.title = "Report"
        ws["B3"] = "Report date"
        if report_date is not None:
            ws["C3"] = report_date
        for ref, value in (cells or {}).items():
            ws[ref] = value
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
    return _make


@pytest.fixture
def make_client():
    def _make(tables=None, fail_on=()):
        return FakeSupabaseClient(tables=tables, fail_on=fail_on)
    return _make


@pytest.fixture
def make_legacy_workbook():
    """Build a legacy .xls buffer: same layout as make_workbook."""
    def _make(report_date="2024-05-04", cells=None):
        wb = xlwt.Workbook()
        ws = wb.add_sheet("Report")
        ws.write(0, 0, "Daily Production Report")
        ws.write(2, 1, "Report date")
        entries = dict(cells or {})
        if report_date is not None:
            entries["C3"] = report_date
        for ref, value in entries.items():
            row, col = coordinate_to_tuple(ref)
            ws.write(row - 1, col - 1, value)
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()
    return _make
