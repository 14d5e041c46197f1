import json

import pytest

from gaspro_dashboard.exceptions import RecordNotFoundError, StoreError
from gaspro_dashboard.models import ChangeOp, ProductionRecord, RecordKind
from gaspro_dashboard.store import (
    ChangeFeed,
    LocalCacheBackend,
    RecordStore,
    SupabaseBackend,
    open_store,
)

PAYLOAD = {"field": "Alpha West", "amount": 450.0, "condensate": 12.0, "water": 3.0, "date": "2024-05-01"}


def test_open_store_without_credentials_is_local(tmp_path):
    store = open_store(url="", key="", cache_dir=tmp_path)
    assert store.mode == "local"
    assert not store.is_configured
    assert not store.supports_subscription
    assert store.subscribe() is None


def test_local_create_update_delete_round_trip(local_store):
    created = local_store.create(RecordKind.PRODUCTION, PAYLOAD)
    updated = local_store.update(RecordKind.PRODUCTION, created.id, {**PAYLOAD, "amount": 500.0})

    assert updated.id == created.id
    assert updated.amount == 500.0
    assert updated.condensate == created.condensate

    local_store.delete(RecordKind.PRODUCTION, created.id)
    assert local_store.get_all(RecordKind.PRODUCTION) == []


def test_delete_removes_only_the_given_id(local_store):
    first = local_store.create(RecordKind.PRODUCTION, PAYLOAD)
    local_store.delete(RecordKind.PRODUCTION, first.id)
    second = local_store.create(RecordKind.PRODUCTION, PAYLOAD)
    third = local_store.create(RecordKind.PRODUCTION, {**PAYLOAD, "field": "Echo Flat"})

    local_store.delete(RecordKind.PRODUCTION, third.id)
    remaining = local_store.get_all(RecordKind.PRODUCTION)
    assert [r.id for r in remaining] == [second.id]


def test_local_writes_are_mirrored_to_cache_slots(tmp_path):
    backend = LocalCacheBackend(tmp_path)
    store = RecordStore(backend)
    store.create(RecordKind.PERSONNEL, {"date": "2024-05-01", "officers": 12, "employees": 45})

    slot = tmp_path / "gaspro_personnel_data.json"
    rows = json.loads(slot.read_text())
    assert rows[0]["officers"] == 12

    reopened = RecordStore(LocalCacheBackend(tmp_path))
    assert reopened.get_all(RecordKind.PERSONNEL)[0].employees == 45


def test_local_unknown_id_raises(local_store):
    with pytest.raises(RecordNotFoundError):
        local_store.update(RecordKind.PRODUCTION, "missing", PAYLOAD)
    with pytest.raises(RecordNotFoundError):
        local_store.delete(RecordKind.PRODUCTION, "missing")


def test_corrupt_cache_slot_starts_empty(tmp_path):
    (tmp_path / "gaspro_production_data.json").write_text("{not json")
    store = RecordStore(LocalCacheBackend(tmp_path))
    assert store.get_all(RecordKind.PRODUCTION) == []


def test_supabase_backend_crud(fake_client):
    store = RecordStore(SupabaseBackend(fake_client))
    assert store.is_configured

    created = store.create(RecordKind.PRODUCTION, PAYLOAD)
    store.create(RecordKind.PRODUCTION, {**PAYLOAD, "date": "2024-05-02"})
    listed = store.get_all(RecordKind.PRODUCTION)
    assert [r.date for r in listed] == ["2024-05-02", "2024-05-01"]

    updated = store.update(RecordKind.PRODUCTION, created.id, {**PAYLOAD, "amount": 1.0})
    assert updated.id == created.id and updated.amount == 1.0

    store.delete(RecordKind.PRODUCTION, created.id)
    assert len(store.get_all(RecordKind.PRODUCTION)) == 1


@pytest.mark.parametrize("action,call", [
    ("select", lambda s: s.get_all(RecordKind.PRODUCTION)),
    ("insert", lambda s: s.create(RecordKind.PRODUCTION, PAYLOAD)),
    ("update", lambda s: s.update(RecordKind.PRODUCTION, "x", PAYLOAD)),
    ("delete", lambda s: s.delete(RecordKind.PRODUCTION, "x")),
])
def test_supabase_failures_raise_store_error(make_client, action, call):
    store = RecordStore(SupabaseBackend(make_client(fail_on=[action])))
    with pytest.raises(StoreError):
        call(store)


def test_supabase_update_unknown_id(fake_client):
    store = RecordStore(SupabaseBackend(fake_client))
    with pytest.raises(RecordNotFoundError):
        store.update(RecordKind.PRODUCTION, "nope", PAYLOAD)


def test_malformed_backend_rows_are_skipped(make_client):
    client = make_client(tables={"production_records": [
        {"id": "1", "field": "A", "amount": 10, "date": "2024-01-01"},
        {"id": "2", "field": "B", "amount": "lots", "date": "2024-01-01"},
        {"id": "3", "field": "C", "amount": 5, "date": "someday"},
    ]})
    records = RecordStore(SupabaseBackend(client)).get_all(RecordKind.PRODUCTION)
    assert [r.id for r in records] == ["1"]


def test_change_feed_validates_and_queues_events():
    feed = ChangeFeed(url="http://example.invalid", key="k")
    feed.handle_payload(RecordKind.PRODUCTION, {
        "eventType": "INSERT",
        "new": {"id": "9", "field": "A", "amount": 1, "date": "2024-01-01"},
        "old": {},
    })
    feed.handle_payload(RecordKind.PRODUCTION, {"eventType": "TRUNCATE"})
    feed.handle_payload(RecordKind.PERSONNEL, {"data": {"type": "DELETE", "old_record": {"id": "h1"}}})

    events = feed.drain()
    assert [(e.kind, e.op) for e in events] == [
        (RecordKind.PRODUCTION, ChangeOp.INSERT),
        (RecordKind.PERSONNEL, ChangeOp.DELETE),
    ]
    assert isinstance(events[0].record, ProductionRecord)
    assert events[1].record_id == "h1"
    assert feed.drain() == []


def test_non_finite_cached_rows_are_skipped(tmp_path):
    (tmp_path / "gaspro_personnel_data.json").write_text(
        '[{"id": "h1", "date": "2024-05-01", "officers": NaN, "employees": 230},'
        ' {"id": "h2", "date": "2024-05-02", "officers": 60, "employees": Infinity},'
        ' {"id": "h3", "date": "2024-05-03", "officers": 61, "employees": 231}]'
    )
    records = RecordStore(LocalCacheBackend(tmp_path)).get_all(RecordKind.PERSONNEL)
    assert [r.id for r in records] == ["h3"]
