from __future__ import annotations

import asyncio

import pytest

from availability_engine.application.exceptions import DataFetchError
from availability_engine.application.ports.document_store import DocumentChange
from availability_engine.infrastructure.store.change_hub import ChangeHub
from availability_engine.infrastructure.store.memory_store import MemoryDocumentStore, matches_filters


def test_matches_filters():
    doc = {"companyId": "company-a", "isActive": True}
    assert matches_filters(doc, None)
    assert matches_filters(doc, {"companyId": "company-a"})
    assert not matches_filters(doc, {"companyId": "company-a", "isActive": False})
    assert not matches_filters(doc, {"missing": "x"})


@pytest.mark.asyncio
async def test_memory_store_returns_copies():
    store = MemoryDocumentStore()
    await store.set("service_workers", "w1", {"assignedServices": ["svc-a"]})

    doc = await store.get("service_workers", "w1")
    doc.data["assignedServices"].append("svc-b")

    again = await store.get("service_workers", "w1")
    assert again.data["assignedServices"] == ["svc-a"]


@pytest.mark.asyncio
async def test_memory_store_add_generates_unique_ids():
    store = MemoryDocumentStore()
    first = await store.add("worker_reservations", {"workerId": "w1"})
    second = await store.add("worker_reservations", {"workerId": "w1"})
    assert first != second
    assert store.count("worker_reservations") == 2


@pytest.mark.asyncio
async def test_memory_store_update_requires_existing_document():
    store = MemoryDocumentStore()
    with pytest.raises(DataFetchError):
        await store.update("worker_reservations", "nope", {"status": "expired"})


@pytest.mark.asyncio
async def test_writer_is_not_blocked_by_failing_listener():
    store = MemoryDocumentStore()
    seen: list[str] = []

    async def broken(change: DocumentChange) -> None:
        raise RuntimeError("listener bug")

    async def record(change: DocumentChange) -> None:
        seen.append(change.document_id)

    with store.on_write("service_bookings", broken), store.on_write("service_bookings", record):
        await store.set("service_bookings", "b1", {"status": "pending"})
        await store.wait_for_listeners()

    assert seen == ["b1"]
    assert (await store.get("service_bookings", "b1")).data == {"status": "pending"}


@pytest.mark.asyncio
async def test_closed_subscription_receives_nothing():
    store = MemoryDocumentStore()
    seen: list[DocumentChange] = []

    async def record(change: DocumentChange) -> None:
        seen.append(change)

    subscription = store.on_write("service_workers", record)
    subscription.close()
    subscription.close()
    await store.set("service_workers", "w1", {"companyId": "company-a"})
    await store.wait_for_listeners()

    assert subscription.closed
    assert seen == []


@pytest.mark.asyncio
async def test_listeners_only_see_their_collection():
    store = MemoryDocumentStore()
    seen: list[str] = []

    async def record(change: DocumentChange) -> None:
        seen.append(change.collection)

    with store.on_write("service_workers", record):
        await store.set("service_bookings", "b1", {})
        await store.set("service_workers", "w1", {})
        await store.wait_for_listeners()

    assert seen == ["service_workers"]


@pytest.mark.asyncio
async def test_hub_drain_waits_for_slow_handlers():
    hub = ChangeHub()
    finished: list[str] = []

    async def slow(change: DocumentChange) -> None:
        await asyncio.sleep(0.01)
        finished.append(change.document_id)

    hub.subscribe("service_bookings", slow)
    assert hub.subscriber_count("service_bookings") == 1

    hub.publish(DocumentChange("service_bookings", "b1", before=None, after={}))
    hub.publish(DocumentChange("service_bookings", "b2", before=None, after={}))
    await hub.drain()

    assert sorted(finished) == ["b1", "b2"]
