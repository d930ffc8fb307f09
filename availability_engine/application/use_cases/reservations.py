from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.use_cases.resolve_worker import WorkerAvailabilityResolver
from availability_engine.application.utils.concurrency import bounded_gather
from availability_engine.domain.entities.reservation import ReservationStatus
from availability_engine.domain.entities.time_slot import TimeSlot


@dataclass(frozen=True)
class ReservationOutcome:
    reserved: bool
    message: str
    worker_id: str
    booking_id: str | None
    reservation_id: str | None = None
    reserved_at: datetime | None = None
    expires_at: datetime | None = None


class ReservationService:
    def __init__(
        self,
        repository: AvailabilityRepository,
        resolver: WorkerAvailabilityResolver,
        aggregator: CompanyAvailabilityAggregator,
        clock: ClockPort,
        hold_seconds: int = 10 * 60,
        max_concurrency: int = 0,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._aggregator = aggregator
        self._clock = clock
        self._hold = timedelta(seconds=hold_seconds)
        self._max_concurrency = max_concurrency
        self._logger = logging.getLogger(__name__)

    async def reserve(
        self,
        company_id: str,
        worker_id: str,
        start: datetime,
        end: datetime,
        booking_id: str | None,
    ) -> ReservationOutcome:
        """Place a temporary hold on a worker if they are still free for [start, end)."""
        slot = TimeSlot.from_bounds(start, end, self._repository.timezone)
        availability = await self._resolver.resolve(worker_id, slot)
        if not availability.available:
            self._logger.info(
                "Reservation refused",
                extra={"worker_id": worker_id, "booking_id": booking_id, "reason": availability.reason.value},
            )
            return ReservationOutcome(
                reserved=False,
                message="Worker is no longer available",
                worker_id=worker_id,
                booking_id=booking_id,
            )

        now = self._clock.now()
        expires_at = now + self._hold
        added = await self._repository.add_reservation(
            {
                "workerId": worker_id,
                "companyId": company_id,
                "bookingId": booking_id,
                "startTime": slot.start.isoformat(),
                "endTime": slot.end.isoformat(),
                "status": ReservationStatus.reserved.value,
                "createdAt": now.isoformat(),
                "expiresAt": expires_at.isoformat(),
            }
        )
        if not added.ok:
            return ReservationOutcome(
                reserved=False,
                message="Unable to reserve worker",
                worker_id=worker_id,
                booking_id=booking_id,
            )

        await self._aggregator.aggregate(company_id)
        self._logger.info(
            "Worker reserved",
            extra={"worker_id": worker_id, "booking_id": booking_id, "company_id": company_id},
        )
        return ReservationOutcome(
            reserved=True,
            message="Worker reserved successfully",
            worker_id=worker_id,
            booking_id=booking_id,
            reservation_id=added.value,
            reserved_at=now,
            expires_at=expires_at,
        )

    async def expire_lapsed(self) -> int:
        """Mark lapsed holds expired. Safe to run repeatedly; returns how many were expired."""
        now = self._clock.now()
        reserved = await self._repository.reserved_reservations()
        if not reserved.ok:
            self._logger.warning("Reservation sweep skipped", extra={"error": reserved.detail})
            return 0

        lapsed = [r for r in reserved.value or [] if r.has_lapsed(now)]
        results = await bounded_gather(
            (self._repository.expire_reservation(r.id) for r in lapsed),
            self._max_concurrency,
        )
        expired = sum(1 for result in results if result.ok)
        if expired:
            self._logger.info("Expired lapsed reservations", extra={"count": expired})
        return expired


async def sweep_forever(service: ReservationService, interval_seconds: float) -> None:
    """Run expire_lapsed every interval until cancelled."""
    logger = logging.getLogger(__name__)
    while True:
        try:
            await service.expire_lapsed()
        except Exception as e:
            logger.exception("Reservation sweep failed", extra={"error": str(e)})
        await asyncio.sleep(interval_seconds)
