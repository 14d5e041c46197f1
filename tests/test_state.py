import pytest

from gaspro_dashboard.dashboard import get_dashboard_overview
from gaspro_dashboard.exceptions import DuplicateRecordError, StoreError, ValidationError
from gaspro_dashboard.models import ChangeEvent, ChangeOp, PersonnelRecord, ProductionRecord, RecordKind
from gaspro_dashboard.state import AppState
from gaspro_dashboard.store import LocalCacheBackend, RecordStore, SupabaseBackend

FULL_CELLS = {"C7": 450, "D7": 120, "E7": 30, "C8": 320, "C9": 0}


@pytest.fixture
def state(local_store):
    app = AppState(local_store)
    app.load(seed_if_empty=False)
    return app


def test_local_load_seeds_empty_cache(local_store):
    app = AppState(local_store)
    assert app.load() == "local"
    assert app.production and app.personnel
    assert app.selected_date == "2024-05-03"


def test_local_load_does_not_reseed_existing_cache(tmp_path):
    backend = LocalCacheBackend(tmp_path)
    backend.replace_all(RecordKind.PRODUCTION, [])
    backend.replace_all(RecordKind.PERSONNEL, [])
    app = AppState(RecordStore(backend))
    app.load()
    assert app.production == [] and app.personnel == []
    assert app.selected_date is None


def test_add_production_selects_first_date(state):
    record = state.add_production("Alpha West", "450", "2024-05-01", condensate="12", water="")
    assert state.production == [record]
    assert record.water == 0.0
    assert state.selected_date == "2024-05-01"


def test_duplicate_field_and_date_is_rejected(state):
    state.add_production("Alpha West", 450, "2024-05-01")
    with pytest.raises(DuplicateRecordError, match='"Alpha West" on 2024-05-01 already exists'):
        state.add_production("Alpha West", 100, "2024-05-01")
    assert len(state.production) == 1


def test_editing_a_record_keeps_its_own_field_and_date(state):
    first = state.add_production("Alpha West", 450, "2024-05-01")
    state.add_production("Bravo Shore", 320, "2024-05-01")

    updated = state.update_production(first.id, "Alpha West", 470, "2024-05-01")
    assert updated.amount == 470
    assert len(state.production) == 2
    assert next(r for r in state.production if r.id == first.id).amount == 470

    with pytest.raises(DuplicateRecordError):
        state.update_production(first.id, "Bravo Shore", 470, "2024-05-01")


def test_update_without_condensate_or_water_keeps_stored_values(state):
    record = state.add_production("Alpha West", 450, "2024-05-01", condensate=120, water=30)
    updated = state.update_production(record.id, "Alpha West", 470, "2024-05-01")

    assert updated.amount == 470
    assert (updated.condensate, updated.water) == (120, 30)
    assert state.production == [updated]

    cleared = state.update_production(record.id, "Alpha West", 470, "2024-05-01", condensate=0, water="")
    assert (cleared.condensate, cleared.water) == (0, 0)


def test_delete_production_removes_only_that_record(state):
    first = state.add_production("Alpha West", 450, "2024-05-01")
    second = state.add_production("Bravo Shore", 320, "2024-05-02")
    state.delete_production(second.id)
    assert [r.id for r in state.production] == [first.id]
    assert state.selected_date == "2024-05-01"


@pytest.mark.parametrize("field,amount,date", [
    ("", 10, "2024-05-01"),
    ("Alpha West", "", "2024-05-01"),
    ("Alpha West", "lots", "2024-05-01"),
    ("Alpha West", -5, "2024-05-01"),
    ("Alpha West", 10, "soon"),
])
def test_invalid_production_input_is_rejected(state, field, amount, date):
    with pytest.raises(ValidationError):
        state.add_production(field, amount, date)
    assert state.production == []


def test_personnel_actions(state):
    record = state.add_personnel("2024-05-01", "60", "230", approved_officers="", approved_employees=240)
    assert record.officers == 60
    assert record.approved_officers is None
    assert record.approved_employees == 240

    with pytest.raises(DuplicateRecordError):
        state.add_personnel("2024-05-01", 1, 1)

    updated = state.update_personnel(record.id, "2024-05-01", 62, 231)
    assert state.personnel == [updated]
    state.delete_personnel(record.id)
    assert state.personnel == []


def test_personnel_dates_join_navigation(state):
    state.add_production("Alpha West", 450, "2024-05-01")
    state.add_personnel("2024-05-04", 60, 230)
    assert state.navigation_dates == ["2024-05-01", "2024-05-04"]
    assert state.selected_date == "2024-05-04"


def test_newest_headcount_date_is_live_not_historical(state):
    state.add_production("Alpha West", 450, "2024-05-01")
    state.add_personnel("2024-05-04", 60, 230)

    overview = get_dashboard_overview(
        state.production_df, state.personnel_df, state.selected_date,
        navigation_latest=state.navigator.latest,
    )
    assert state.navigator.is_latest
    assert not overview["is_historical"]
    assert overview["latest_date"] == "2024-05-01"
    assert overview["total"] == 0.0

    state.navigator.previous()
    overview = get_dashboard_overview(
        state.production_df, state.personnel_df, state.selected_date,
        navigation_latest=state.navigator.latest,
    )
    assert overview["selected_date"] == "2024-05-01"
    assert overview["is_historical"]


def test_unreachable_backend_falls_back_to_cache(tmp_path, make_client):
    cache = LocalCacheBackend(tmp_path)
    cache.replace_all(RecordKind.PRODUCTION, [
        {"id": "c1", "field": "Alpha West", "amount": 10, "date": "2024-04-01"},
    ])
    store = RecordStore(SupabaseBackend(make_client(fail_on=["select"])))
    app = AppState(store, offline_cache=cache)

    assert app.load() == "offline"
    assert [r.id for r in app.production] == ["c1"]
    assert app.personnel == []


def test_failed_backend_write_leaves_state_untouched(make_client):
    client = make_client(fail_on=["insert", "delete"])
    client.tables["production_records"] = [
        {"id": "p1", "field": "Alpha West", "amount": 10, "date": "2024-04-01"},
    ]
    app = AppState(RecordStore(SupabaseBackend(client)))
    assert app.load() == "online"
    version = app.version

    with pytest.raises(StoreError):
        app.add_production("Bravo Shore", 20, "2024-04-01")
    with pytest.raises(StoreError):
        app.delete_production("p1")

    assert [r.id for r in app.production] == ["p1"]
    assert app.version == version


def test_importing_the_same_workbook_twice(state, make_workbook):
    content = make_workbook("2024-05-04", FULL_CELLS)
    first = state.import_workbook(content)
    second = state.import_workbook(content)

    assert first.status == "created"
    assert second.status == "already_exists"
    assert sorted(r.field for r in state.production) == ["Alpha West", "Bravo Shore"]
    assert state.selected_date == "2024-05-04"


def test_apply_changes_inserts_updates_and_deletes(state):
    original = ProductionRecord(id="p1", field="Alpha West", amount=10, date="2024-05-01")
    edited = original.with_changes(amount=25)
    crew = PersonnelRecord(id="h1", date="2024-05-02", officers=60, employees=230)

    applied = state.apply_changes([
        ChangeEvent(RecordKind.PRODUCTION, ChangeOp.INSERT, "p1", original),
        ChangeEvent(RecordKind.PERSONNEL, ChangeOp.INSERT, "h1", crew),
        ChangeEvent(RecordKind.PRODUCTION, ChangeOp.UPDATE, "p1", edited),
    ])
    assert applied == 3
    assert state.production == [edited]
    assert state.selected_date == "2024-05-02"

    state.apply_changes([ChangeEvent(RecordKind.PERSONNEL, ChangeOp.DELETE, "h1")])
    assert state.personnel == []
    assert state.selected_date == "2024-05-01"


def test_echoed_insert_of_own_write_is_not_duplicated(state):
    record = state.add_production("Alpha West", 450, "2024-05-01")
    state.apply_changes([ChangeEvent(RecordKind.PRODUCTION, ChangeOp.INSERT, record.id, record)])
    assert state.production == [record]
