from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo, timezone
from typing import Any, Awaitable, Mapping, TypeVar

from availability_engine.application.ports.document_store import DocumentStorePort
from availability_engine.domain.entities.booking import Booking
from availability_engine.domain.entities.offering import CompanyOffering
from availability_engine.domain.entities.reservation import ReservationStatus, WorkerReservation
from availability_engine.domain.entities.result import ErrorKind, Result
from availability_engine.domain.entities.snapshot import CompanyAvailabilitySnapshot, snapshot_key
from availability_engine.domain.entities.worker import Worker

T = TypeVar("T")


class AvailabilityRepository:
    """
    Reads and writes the engine needs, over the document store.
    Every call returns a Result; store exceptions and timeouts never escape.
    """

    def __init__(
        self,
        store: DocumentStorePort,
        timezone_: tzinfo = timezone.utc,
        timeout_seconds: float = 5.0,
        bookings_collection: str = "service_bookings",
        workers_collection: str = "service_workers",
        offerings_collection: str = "service_services",
        snapshots_collection: str = "company_availability",
        reservations_collection: str = "worker_reservations",
    ) -> None:
        self._store = store
        self._timezone = timezone_
        self._timeout_seconds = timeout_seconds
        self.bookings_collection = bookings_collection
        self.workers_collection = workers_collection
        self.offerings_collection = offerings_collection
        self.snapshots_collection = snapshots_collection
        self.reservations_collection = reservations_collection
        self._logger = logging.getLogger(__name__)

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    async def _call(
        self,
        operation: str,
        awaitable: Awaitable[T],
        error_kind: ErrorKind = ErrorKind.data_fetch_error,
    ) -> Result[T]:
        try:
            if self._timeout_seconds and self._timeout_seconds > 0:
                value = await asyncio.wait_for(awaitable, timeout=self._timeout_seconds)
            else:
                value = await awaitable
        except asyncio.TimeoutError:
            self._logger.warning(
                "Store call timed out",
                extra={"operation": operation, "error_kind": ErrorKind.timeout.value},
            )
            return Result.failure(ErrorKind.timeout, f"{operation} timed out after {self._timeout_seconds}s")
        except Exception as e:
            self._logger.warning(
                "Store call failed",
                extra={"operation": operation, "error_kind": error_kind.value, "error": str(e)},
            )
            return Result.failure(error_kind, f"{operation}: {e}")
        return Result.success(value)

    async def company_workers(self, company_id: str, service_id: str | None = None) -> Result[list[Worker]]:
        """Active workers of the company, limited to those assigned to service_id when given."""
        result = await self._call(
            "company_workers",
            self._store.query(self.workers_collection, {"companyId": company_id, "isActive": True}),
        )
        if not result.ok:
            return result
        workers = [Worker.from_document(doc.id, doc.data) for doc in result.value or []]
        return Result.success([w for w in workers if w.is_eligible_for(service_id)])

    async def blocking_bookings(self, worker_id: str) -> Result[list[Booking]]:
        result = await self._call(
            "blocking_bookings",
            self._store.query(self.bookings_collection, {"assignedWorker": worker_id}),
        )
        if not result.ok:
            return result
        bookings = [Booking.from_document(doc.id, doc.data, self._timezone) for doc in result.value or []]
        return Result.success([b for b in bookings if b.is_blocking])

    async def holding_reservations(self, worker_id: str, now: datetime) -> Result[list[WorkerReservation]]:
        result = await self._call(
            "holding_reservations",
            self._store.query(
                self.reservations_collection,
                {"workerId": worker_id, "status": ReservationStatus.reserved.value},
            ),
        )
        if not result.ok:
            return result
        reservations = _reservations(result.value or [], self._timezone)
        return Result.success([r for r in reservations if r.is_holding(now)])

    async def reserved_reservations(self) -> Result[list[WorkerReservation]]:
        result = await self._call(
            "reserved_reservations",
            self._store.query(self.reservations_collection, {"status": ReservationStatus.reserved.value}),
        )
        if not result.ok:
            return result
        return Result.success(_reservations(result.value or [], self._timezone))

    async def add_reservation(self, data: Mapping[str, Any]) -> Result[str]:
        return await self._call("add_reservation", self._store.add(self.reservations_collection, data))

    async def expire_reservation(self, reservation_id: str) -> Result[None]:
        return await self._call(
            "expire_reservation",
            self._store.update(
                self.reservations_collection, reservation_id, {"status": ReservationStatus.expired.value}
            ),
        )

    async def active_offerings(self, service_id: str) -> Result[list[CompanyOffering]]:
        result = await self._call(
            "active_offerings",
            self._store.query(self.offerings_collection, {"adminServiceId": service_id, "isActive": True}),
        )
        if not result.ok:
            return result
        offerings = [CompanyOffering.from_document(doc.id, doc.data) for doc in result.value or []]
        return Result.success([o for o in offerings if o is not None])

    async def save_snapshot(self, snapshot: CompanyAvailabilitySnapshot) -> Result[None]:
        return await self._call(
            "save_snapshot",
            self._store.set(self.snapshots_collection, snapshot.key, snapshot.to_document()),
            error_kind=ErrorKind.snapshot_write_error,
        )

    async def load_snapshot(
        self, company_id: str, service_id: str | None = None
    ) -> Result[CompanyAvailabilitySnapshot | None]:
        result = await self._call(
            "load_snapshot",
            self._store.get(self.snapshots_collection, snapshot_key(company_id, service_id)),
        )
        if not result.ok:
            return result
        doc = result.value
        return Result.success(CompanyAvailabilitySnapshot.from_document(doc.data) if doc else None)


def _reservations(docs: list[Any], tz: tzinfo) -> list[WorkerReservation]:
    reservations = [WorkerReservation.from_document(doc.id, doc.data, tz) for doc in docs]
    return [r for r in reservations if r is not None]
