"""
Record store adapter.

Uniform CRUD over the two record kinds, backed either by Supabase (when
SUPABASE_URL and SUPABASE_ANON_KEY are set) or by a local JSON cache with
one file per record kind.

To swap Supabase for another backend:
    Implement fetch_all / insert / update / delete on a new backend class
    returning plain row dicts, and hand it to RecordStore.
"""

import asyncio
import json
import logging
import queue
import threading
import uuid
from pathlib import Path
from typing import Callable

from .config import (
    CACHE_DIR,
    PERSONNEL_CACHE_KEY,
    PERSONNEL_TABLE,
    PRODUCTION_CACHE_KEY,
    PRODUCTION_TABLE,
    SUPABASE_ANON_KEY,
    SUPABASE_URL,
)
from .exceptions import RecordNotFoundError, StoreError, ValidationError
from .models import RECORD_TYPES, ChangeEvent, RecordKind, parse_change_payload

logger = logging.getLogger(__name__)

TABLES = {
    RecordKind.PRODUCTION: PRODUCTION_TABLE,
    RecordKind.PERSONNEL: PERSONNEL_TABLE,
}

CACHE_KEYS = {
    RecordKind.PRODUCTION: PRODUCTION_CACHE_KEY,
    RecordKind.PERSONNEL: PERSONNEL_CACHE_KEY,
}


# ---------------------------------------------------------------------------
# Local cache backend
# ---------------------------------------------------------------------------

class LocalCacheBackend:
    """In-memory collections mirrored to one JSON file per record kind.

    Writes are synchronous and never fail for lack of a server.
    """

    mode = "local"

    def __init__(self, cache_dir: Path | str = CACHE_DIR):
        self.cache_dir = Path(cache_dir)
        self._rows: dict[RecordKind, list[dict]] = {}

    def _slot_path(self, kind: RecordKind) -> Path:
        return self.cache_dir / f"{CACHE_KEYS[kind]}.json"

    def has_slot(self, kind: RecordKind) -> bool:
        return self._slot_path(kind).exists()

    def _load(self, kind: RecordKind) -> list[dict]:
        if kind in self._rows:
            return self._rows[kind]

        path = self._slot_path(kind)
        rows: list[dict] = []
        if path.exists():
            try:
                rows = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.warning("Local cache slot %s is unreadable, starting empty", path)
                rows = []
            if not isinstance(rows, list):
                logger.warning("Local cache slot %s does not hold a list, starting empty", path)
                rows = []
        self._rows[kind] = rows
        return rows

    def _persist(self, kind: RecordKind) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._slot_path(kind).write_text(
            json.dumps(self._rows.get(kind, []), indent=2), encoding="utf-8"
        )

    def fetch_all(self, kind: RecordKind) -> list[dict]:
        rows = self._load(kind)
        return sorted(rows, key=lambda r: str(r.get("date", "")), reverse=True)

    def replace_all(self, kind: RecordKind, rows: list[dict]) -> None:
        self._rows[kind] = [dict(r) for r in rows]
        self._persist(kind)

    def insert(self, kind: RecordKind, payload: dict) -> dict:
        row = {"id": uuid.uuid4().hex, **payload}
        self._load(kind).insert(0, row)
        self._persist(kind)
        return dict(row)

    def update(self, kind: RecordKind, record_id: str, payload: dict) -> dict:
        rows = self._load(kind)
        for i, row in enumerate(rows):
            if str(row.get("id")) == record_id:
                rows[i] = {**payload, "id": record_id}
                self._persist(kind)
                return dict(rows[i])
        raise RecordNotFoundError(f"No {kind.value} record with id {record_id}")

    def delete(self, kind: RecordKind, record_id: str) -> None:
        rows = self._load(kind)
        kept = [r for r in rows if str(r.get("id")) != record_id]
        if len(kept) == len(rows):
            raise RecordNotFoundError(f"No {kind.value} record with id {record_id}")
        self._rows[kind] = kept
        self._persist(kind)


# ---------------------------------------------------------------------------
# Supabase backend
# ---------------------------------------------------------------------------

class SupabaseBackend:
    """Row-oriented CRUD over the Supabase REST API.

    Any client error is logged and re-raised as StoreError; callers must not
    apply the change locally in that case.
    """

    mode = "online"

    def __init__(self, client):
        self.db = client

    @classmethod
    def from_settings(cls, url: str = SUPABASE_URL, key: str = SUPABASE_ANON_KEY) -> "SupabaseBackend":
        from supabase import create_client

        return cls(create_client(url, key))

    def fetch_all(self, kind: RecordKind) -> list[dict]:
        table = TABLES[kind]
        try:
            result = self.db.table(table).select("*").order("date", desc=True).execute()
        except Exception as e:
            logger.error("Supabase select on %s failed: %s", table, e)
            if "42501" in str(e):
                logger.warning("Row-level security rejected the read on %s; check table policies", table)
            raise StoreError("load", str(e)) from e
        return list(result.data or [])

    def insert(self, kind: RecordKind, payload: dict) -> dict:
        table = TABLES[kind]
        try:
            result = self.db.table(table).insert(payload).execute()
        except Exception as e:
            logger.error("Supabase insert on %s failed: %s", table, e)
            raise StoreError("create", str(e)) from e
        if not result.data:
            raise StoreError("create", f"backend returned no row for insert into {table}")
        return result.data[0]

    def update(self, kind: RecordKind, record_id: str, payload: dict) -> dict:
        table = TABLES[kind]
        try:
            result = self.db.table(table).update(payload).eq("id", record_id).execute()
        except Exception as e:
            logger.error("Supabase update on %s id=%s failed: %s", table, record_id, e)
            raise StoreError("update", str(e)) from e
        if not result.data:
            raise RecordNotFoundError(f"No {kind.value} record with id {record_id}")
        return result.data[0]

    def delete(self, kind: RecordKind, record_id: str) -> None:
        table = TABLES[kind]
        try:
            self.db.table(table).delete().eq("id", record_id).execute()
        except Exception as e:
            logger.error("Supabase delete on %s id=%s failed: %s", table, record_id, e)
            raise StoreError("delete", str(e)) from e


# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------

class ChangeFeed:
    """Realtime subscription to both tables, run on a background event loop.

    Raw payloads are validated into ChangeEvents and queued; the UI thread
    calls drain() to merge them into application state.
    """

    def __init__(self, url: str = SUPABASE_URL, key: str = SUPABASE_ANON_KEY):
        self.url = url
        self.key = key
        self.events: queue.Queue[ChangeEvent] = queue.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._stop: asyncio.Event | None = None

    def handle_payload(self, kind: RecordKind, payload: dict) -> None:
        try:
            event = parse_change_payload(kind, payload)
        except ValidationError as e:
            logger.warning("Dropped malformed %s change event: %s", kind.value, e)
            return
        self.events.put(event)

    def drain(self) -> list[ChangeEvent]:
        pending = []
        while True:
            try:
                pending.append(self.events.get_nowait())
            except queue.Empty:
                return pending

    async def _listen(self) -> None:
        from supabase import acreate_client

        self._stop = asyncio.Event()
        client = await acreate_client(self.url, self.key)
        channel = client.channel("db-changes")
        for kind, table in TABLES.items():
            channel.on_postgres_changes(
                "*",
                schema="public",
                table=table,
                callback=lambda payload, kind=kind: self.handle_payload(kind, payload),
            )

        def on_status(status, err=None):
            if err is not None or "ERROR" in str(status):
                logger.error("Realtime subscription error (%s). Check replication policies.", err or status)

        await channel.subscribe(on_status)
        logger.info("Subscribed to change feed on %s", ", ".join(TABLES.values()))
        await self._stop.wait()
        await client.remove_channel(channel)

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        try:
            self._loop.run_until_complete(self._listen())
        except Exception:
            logger.exception("Change feed stopped")
        finally:
            self._loop.close()

    def start(self) -> "ChangeFeed":
        self._thread = threading.Thread(target=self._run, name="gaspro-change-feed", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._loop is not None and self._stop is not None:
            self._loop.call_soon_threadsafe(self._stop.set)


# ---------------------------------------------------------------------------
# Store facade
# ---------------------------------------------------------------------------

class RecordStore:
    """Capability-tagged store over one backend.

    ``mode`` is "online" for a configured backend and "local" otherwise.
    Returned records are always validated dataclasses.
    """

    def __init__(self, backend, feed_factory: Callable[[], ChangeFeed] | None = None):
        self.backend = backend
        self._feed_factory = feed_factory

    @property
    def mode(self) -> str:
        return self.backend.mode

    @property
    def is_configured(self) -> bool:
        return self.mode == "online"

    @property
    def supports_subscription(self) -> bool:
        return self._feed_factory is not None

    def _to_record(self, kind: RecordKind, row: dict):
        return RECORD_TYPES[kind].from_row(row)

    def get_all(self, kind: RecordKind) -> list:
        records = []
        for row in self.backend.fetch_all(kind):
            try:
                records.append(self._to_record(kind, row))
            except ValidationError as e:
                logger.warning("Skipping malformed %s row %s: %s", kind.value, row.get("id"), e)
        return records

    def create(self, kind: RecordKind, payload: dict):
        row = self.backend.insert(kind, payload)
        return self._to_record(kind, row)

    def update(self, kind: RecordKind, record_id: str, payload: dict):
        row = self.backend.update(kind, record_id, payload)
        return self._to_record(kind, row)

    def delete(self, kind: RecordKind, record_id: str) -> None:
        self.backend.delete(kind, record_id)

    def subscribe(self) -> ChangeFeed | None:
        if self._feed_factory is None:
            return None
        return self._feed_factory().start()


def open_store(
    url: str = SUPABASE_URL,
    key: str = SUPABASE_ANON_KEY,
    cache_dir: Path | str = CACHE_DIR,
) -> RecordStore:
    """Build the store for the current environment.

    Missing Supabase credentials are a recognised operating mode, not an
    error: the store falls back to the local cache.
    """
    if url and key:
        logger.info("Using Supabase backend at %s", url)
        return RecordStore(
            SupabaseBackend.from_settings(url, key),
            feed_factory=lambda: ChangeFeed(url, key),
        )
    logger.info("No backend configured; using local cache in %s", cache_dir)
    return RecordStore(LocalCacheBackend(cache_dir))
