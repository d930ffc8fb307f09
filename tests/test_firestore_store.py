"""
Firestore adapter tests against an in-process stand-in for the SDK clients.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from availability_engine.application.exceptions import DataFetchError, StoreNotConfigured
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.infrastructure.store.firestore_store import FirestoreDocumentStore


class FakeSnapshot:
    def __init__(self, doc_id: str, data: dict | None) -> None:
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self) -> dict | None:
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db: FakeFirestore, collection: str, doc_id: str) -> None:
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self) -> dict:
        return self._db.docs.setdefault(self._collection, {})

    async def get(self) -> FakeSnapshot:
        self._db.check()
        return FakeSnapshot(self.id, self._docs.get(self.id))

    async def set(self, data: dict) -> None:
        self._db.check()
        self._docs[self.id] = dict(data)

    async def update(self, data: dict) -> None:
        self._db.check()
        if self.id not in self._docs:
            raise google_exceptions.NotFound(f"No document to update: {self.id}")
        self._docs[self.id].update(data)

    async def delete(self) -> None:
        self._db.check()
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, db: FakeFirestore, collection: str, filters: tuple = ()) -> None:
        self._db = db
        self._collection = collection
        self.filters = filters

    def where(self, *, filter) -> FakeQuery:
        self._db.filters_seen.append(filter)
        return FakeQuery(self._db, self._collection, self.filters + (filter,))

    async def stream(self):
        self._db.check()
        for doc_id, data in list(self._db.docs.get(self._collection, {}).items()):
            if all(f.op_string == "==" and data.get(f.field_path) == f.value for f in self.filters):
                yield FakeSnapshot(doc_id, data)


class FakeWatch:
    def __init__(self) -> None:
        self.unsubscribed = False

    def unsubscribe(self) -> None:
        self.unsubscribed = True


class FakeCollection(FakeQuery):
    def document(self, doc_id: str) -> FakeDocument:
        return FakeDocument(self._db, self._collection, doc_id)

    async def add(self, data: dict):
        ref = self.document(f"generated-{next(self._db.ids)}")
        await ref.set(data)
        return datetime.now(timezone.utc), ref

    def on_snapshot(self, callback) -> FakeWatch:
        watch = FakeWatch()
        self._db.listeners.append((self._collection, callback, watch))
        return watch


class FakeFirestore:
    def __init__(self) -> None:
        self.docs: dict[str, dict[str, dict]] = {}
        self.filters_seen: list = []
        self.listeners: list = []
        self.ids = itertools.count(1)
        self.error: Exception | None = None

    def check(self) -> None:
        if self.error is not None:
            raise self.error

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)


def make_store(db: FakeFirestore) -> FirestoreDocumentStore:
    return FirestoreDocumentStore(client=db, listen_client=db)


def doc_change(kind: str, doc_id: str, data: dict) -> SimpleNamespace:
    return SimpleNamespace(type=SimpleNamespace(name=kind), document=FakeSnapshot(doc_id, data))


def test_missing_project_is_rejected(monkeypatch):
    from availability_engine.core.config import settings

    monkeypatch.setattr(settings, "FIRESTORE_PROJECT_ID", None)
    with pytest.raises(StoreNotConfigured):
        FirestoreDocumentStore()


@pytest.mark.asyncio
async def test_query_applies_equality_field_filters():
    db = FakeFirestore()
    db.docs["service_workers"] = {
        "w1": {"companyId": "company-a", "isActive": True},
        "w2": {"companyId": "company-a", "isActive": False},
        "w3": {"companyId": "company-b", "isActive": True},
    }
    store = make_store(db)

    docs = await store.query("service_workers", {"companyId": "company-a", "isActive": True})

    assert [(d.id, d.data) for d in docs] == [("w1", {"companyId": "company-a", "isActive": True})]
    assert [(f.field_path, f.op_string, f.value) for f in db.filters_seen] == [
        ("companyId", "==", "company-a"),
        ("isActive", "==", True),
    ]


@pytest.mark.asyncio
async def test_get_returns_document_or_none():
    db = FakeFirestore()
    db.docs["company_availability"] = {"company-a": {"isAvailable": True}}
    store = make_store(db)

    found = await store.get("company_availability", "company-a")

    assert found.id == "company-a"
    assert found.data == {"isAvailable": True}
    assert await store.get("company_availability", "company-b") is None


@pytest.mark.asyncio
async def test_writes_go_through_document_references():
    db = FakeFirestore()
    store = make_store(db)

    doc_id = await store.add("worker_reservations", {"workerId": "w1", "status": "reserved"})
    await store.update("worker_reservations", doc_id, {"status": "expired"})
    await store.set("company_availability", "company-a", {"isAvailable": False})
    await store.set("company_availability", "company-a", {"isAvailable": True})
    await store.delete("company_availability", "company-a")

    assert doc_id == "generated-1"
    assert db.docs["worker_reservations"][doc_id] == {"workerId": "w1", "status": "expired"}
    assert db.docs["company_availability"] == {}


@pytest.mark.asyncio
async def test_update_missing_document_raises_data_fetch_error():
    store = make_store(FakeFirestore())
    with pytest.raises(DataFetchError):
        await store.update("worker_reservations", "r1", {"status": "expired"})


@pytest.mark.asyncio
async def test_api_errors_raise_data_fetch_error():
    db = FakeFirestore()
    db.error = google_exceptions.ServiceUnavailable("backend unavailable")
    store = make_store(db)

    with pytest.raises(DataFetchError):
        await store.query("service_workers")
    with pytest.raises(DataFetchError):
        await store.get("service_workers", "w1")
    with pytest.raises(DataFetchError):
        await store.set("company_availability", "company-a", {})


@pytest.mark.asyncio
async def test_snapshot_listener_feeds_write_handlers():
    db = FakeFirestore()
    store = make_store(db)
    seen = []

    async def record(change):
        seen.append(change)

    with store.on_write("service_bookings", record):
        [(collection, callback, _)] = db.listeners
        assert collection == "service_bookings"

        # The listener thread delivers the initial state first, then later changes.
        await asyncio.to_thread(callback, [], [doc_change("ADDED", "b1", {"companyId": "company-a"})], None)
        await asyncio.to_thread(callback, [], [doc_change("MODIFIED", "b1", {"companyId": "company-b"})], None)
        await asyncio.to_thread(callback, [], [doc_change("REMOVED", "b1", {"companyId": "company-b"})], None)
        await asyncio.to_thread(callback, [], [doc_change("ADDED", "b2", {"companyId": "company-c"})], None)
        await asyncio.sleep(0)
        await store.wait_for_listeners()

    assert [(c.document_id, c.before, c.after) for c in seen] == [
        ("b1", {"companyId": "company-a"}, {"companyId": "company-b"}),
        ("b1", {"companyId": "company-b"}, None),
        ("b2", None, {"companyId": "company-c"}),
    ]
    assert seen[1].is_delete
    assert seen[2].is_create


@pytest.mark.asyncio
async def test_one_listener_per_collection_and_close_stops_them():
    db = FakeFirestore()
    store = make_store(db)

    async def ignore(change):
        return None

    store.on_write("service_bookings", ignore)
    store.on_write("service_bookings", ignore)
    store.on_write("service_workers", ignore)

    assert [collection for collection, _, _ in db.listeners] == ["service_bookings", "service_workers"]
    await store.aclose()
    assert all(watch.unsubscribed for _, _, watch in db.listeners)


@pytest.mark.asyncio
async def test_repository_reads_sdk_timestamps():
    db = FakeFirestore()
    db.docs["service_bookings"] = {
        "b1": {
            "assignedWorker": "w1",
            "status": "confirmed",
            "startTime": datetime(2026, 2, 4, 10, tzinfo=timezone.utc),
            "endTime": datetime(2026, 2, 4, 12, tzinfo=timezone.utc),
        }
    }
    repository = AvailabilityRepository(store=make_store(db), timezone_=timezone.utc, timeout_seconds=1.0)

    [booking] = (await repository.blocking_bookings("w1")).unwrap()

    assert booking.slot.start == datetime(2026, 2, 4, 10, tzinfo=timezone.utc)
    assert booking.slot.end == datetime(2026, 2, 4, 12, tzinfo=timezone.utc)
