from __future__ import annotations

import pytest

from availability_engine.application.ports.document_store import DocumentChange
from availability_engine.application.use_cases.availability_reactor import AvailabilityChangeReactor
from tests.conftest import add_booking, add_worker


@pytest.fixture
def reactor(aggregator):
    return AvailabilityChangeReactor(aggregator=aggregator)


@pytest.mark.asyncio
async def test_new_booking_recomputes_its_company(store, reactor):
    await add_worker(store, "w1")

    recomputed = await reactor.on_booking_written(None, {"companyId": "company-a", "assignedWorker": "w1"})

    assert recomputed == ["company-a"]
    snapshot = await store.get("company_availability", "company-a")
    assert snapshot.data["totalWorkers"] == 1


@pytest.mark.asyncio
async def test_deleted_booking_uses_before_image(reactor):
    recomputed = await reactor.on_booking_written({"companyId": "company-a"}, None)
    assert recomputed == ["company-a"]


@pytest.mark.asyncio
async def test_booking_moved_between_companies_recomputes_both(reactor):
    recomputed = await reactor.on_booking_written({"companyId": "company-a"}, {"companyId": "company-b"})
    assert recomputed == ["company-b", "company-a"]


@pytest.mark.asyncio
async def test_booking_update_within_company_recomputes_once(reactor):
    recomputed = await reactor.on_booking_written(
        {"companyId": "company-a", "status": "pending"}, {"companyId": "company-a", "status": "confirmed"}
    )
    assert recomputed == ["company-a"]


@pytest.mark.asyncio
async def test_booking_without_company_is_ignored(store, reactor):
    assert await reactor.on_booking_written(None, {"assignedWorker": "w1"}) == []
    assert store.count("company_availability") == 0


@pytest.mark.asyncio
async def test_worker_write_recomputes_company(reactor):
    assert await reactor.on_worker_written(None, {"companyId": "company-a", "isActive": True}) == ["company-a"]


@pytest.mark.asyncio
async def test_unrelated_collection_is_ignored(reactor):
    change = DocumentChange("service_services", "o1", before=None, after={"companyId": "company-a"})
    assert await reactor.handle_change(change) == []


@pytest.mark.asyncio
async def test_reactor_errors_are_swallowed(store, reactor):
    store.fail_sets("company_availability")
    change = DocumentChange("service_bookings", "b1", before=None, after={"companyId": "company-a"})

    # snapshot write fails inside the aggregator; the change handler still completes
    assert await reactor.handle_change(change) == ["company-a"]


@pytest.mark.asyncio
async def test_subscribed_reactor_refreshes_snapshot_after_store_writes(store, reactor):
    subscriptions = reactor.start(store)
    try:
        await add_worker(store, "w1")
        await store.wait_for_listeners()
        first = await store.get("company_availability", "company-a")
        assert first.data["availableWorkers"] == 1

        await add_booking(store, "b1", "w1", date="2026-02-03", time="01:00 PM - 02:00 PM")
        await store.wait_for_listeners()
        second = await store.get("company_availability", "company-a")
        assert second.data["availableWorkers"] == 0
    finally:
        for subscription in subscriptions:
            subscription.close()

    await add_worker(store, "w2")
    await store.wait_for_listeners()
    unchanged = await store.get("company_availability", "company-a")
    assert unchanged.data["totalWorkers"] == 1


class FailingAggregator:
    async def aggregate(self, company_id, service_id=None):
        raise RuntimeError("store unavailable")


@pytest.mark.asyncio
async def test_recompute_failure_never_reaches_the_writer():
    reactor = AvailabilityChangeReactor(aggregator=FailingAggregator())
    change = DocumentChange("service_workers", "w1", before=None, after={"companyId": "company-a"})
    assert await reactor.handle_change(change) == []
