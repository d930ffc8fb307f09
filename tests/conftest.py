"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import pytest

from availability_engine.application.exceptions import DataFetchError
from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.use_cases.batch_availability import BatchAvailabilityCoordinator
from availability_engine.application.use_cases.resolve_worker import WorkerAvailabilityResolver
from availability_engine.infrastructure.store.memory_store import MemoryDocumentStore

SERVICE_ID = "svc-cleaning"
SLOT_DATE = "2026-02-04"


class FixedClock(ClockPort):
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


class RecordingStore(MemoryDocumentStore):
    """Memory store that records queries and can be told to fail or stall some of them."""

    def __init__(self) -> None:
        super().__init__()
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self._failing: list[tuple[str, dict[str, Any]]] = []
        self._failing_sets: set[str] = set()
        self.query_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def fail_queries(self, collection: str, **filters: Any) -> None:
        self._failing.append((collection, filters))

    def fail_sets(self, collection: str) -> None:
        self._failing_sets.add(collection)

    def queried(self, collection: str) -> list[dict[str, Any]]:
        return [filters for name, filters in self.queries if name == collection]

    async def query(self, collection: str, filters: Mapping[str, Any] | None = None):
        filters = dict(filters or {})
        self.queries.append((collection, filters))
        for fail_collection, fail_filters in self._failing:
            if collection == fail_collection and all(filters.get(k) == v for k, v in fail_filters.items()):
                raise DataFetchError("simulated outage")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.query_delay:
                await asyncio.sleep(self.query_delay)
            return await super().query(collection, filters)
        finally:
            self.in_flight -= 1

    async def set(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        if collection in self._failing_sets:
            raise DataFetchError("simulated write failure")
        await super().set(collection, doc_id, data)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 2, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def repository(store):
    return AvailabilityRepository(store=store, timezone_=timezone.utc, timeout_seconds=1.0)


@pytest.fixture
def resolver(repository, clock):
    return WorkerAvailabilityResolver(repository=repository, clock=clock)


@pytest.fixture
def aggregator(repository, resolver, clock):
    return CompanyAvailabilityAggregator(repository=repository, resolver=resolver, clock=clock, max_concurrency=4)


@pytest.fixture
def coordinator(repository, aggregator):
    return BatchAvailabilityCoordinator(repository=repository, aggregator=aggregator, max_concurrency=4)


async def add_worker(
    store: MemoryDocumentStore,
    worker_id: str,
    company_id: str = "company-a",
    services: tuple[str, ...] = (SERVICE_ID,),
    active: bool = True,
) -> None:
    await store.set(
        "service_workers",
        worker_id,
        {"companyId": company_id, "isActive": active, "assignedServices": list(services), "name": worker_id.title()},
    )


async def add_booking(
    store: MemoryDocumentStore,
    booking_id: str,
    worker_id: str,
    status: str = "confirmed",
    date: str = SLOT_DATE,
    time: str = "10:00 AM - 12:00 PM",
    company_id: str = "company-a",
    **extra: Any,
) -> None:
    doc = {
        "assignedWorker": worker_id,
        "companyId": company_id,
        "status": status,
        "customerName": "Asha",
        "serviceName": "Deep Cleaning",
    }
    if date and time:
        doc.update({"selectedDate": date, "selectedTime": time})
    doc.update(extra)
    await store.set("service_bookings", booking_id, doc)


async def add_offering(
    store: MemoryDocumentStore,
    offering_id: str,
    company_id: str,
    service_id: str = SERVICE_ID,
    company_name: str | None = None,
    name: str | None = "Deep Cleaning",
    active: bool = True,
) -> None:
    doc: dict[str, Any] = {"companyId": company_id, "adminServiceId": service_id, "isActive": active}
    if company_name:
        doc["companyName"] = company_name
    if name:
        doc["name"] = name
    await store.set("service_services", offering_id, doc)
