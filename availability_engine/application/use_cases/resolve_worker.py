from __future__ import annotations

import logging
from datetime import datetime

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.domain.entities.availability import (
    AvailabilityReason,
    ConflictingBooking,
    WorkerAvailability,
)
from availability_engine.domain.entities.time_slot import TimeSlot, overlaps


class WorkerAvailabilityResolver:
    def __init__(self, repository: AvailabilityRepository, clock: ClockPort) -> None:
        self._repository = repository
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def resolve(self, worker_id: str, requested_slot: TimeSlot) -> WorkerAvailability:
        """
        Free/busy for one worker and one slot.
        The first blocking booking (or live reservation hold) that overlaps wins.
        Fetch failures come back as ERROR; this never raises.
        """
        try:
            return await self._resolve(worker_id, requested_slot)
        except Exception as e:
            self._logger.exception(
                "Worker resolution failed", extra={"worker_id": worker_id, "error": str(e)}
            )
            return _error(worker_id, str(e))

    async def is_free_between(self, worker_id: str, start: datetime, end: datetime) -> bool:
        window = TimeSlot.from_bounds(start, end, self._repository.timezone)
        availability = await self.resolve(worker_id, window)
        return availability.available

    async def _resolve(self, worker_id: str, requested_slot: TimeSlot) -> WorkerAvailability:
        bookings = await self._repository.blocking_bookings(worker_id)
        if not bookings.ok:
            return _error(worker_id, bookings.detail)

        for booking in bookings.value or []:
            if booking.slot is None:
                self._logger.warning(
                    "Booking has no usable time fields, skipped",
                    extra={"booking_id": booking.id, "worker_id": worker_id, "reason": "data_quality"},
                )
                continue
            if overlaps(requested_slot, booking.slot):
                self._logger.info(
                    "Worker has conflicting booking",
                    extra={"worker_id": worker_id, "booking_id": booking.id},
                )
                return WorkerAvailability(
                    worker_id=worker_id,
                    available=False,
                    reason=AvailabilityReason.TIME_CONFLICT,
                    conflicting_booking=ConflictingBooking(
                        id=booking.id,
                        date=booking.slot.date.isoformat(),
                        time=booking.slot.label,
                        customer=booking.customer_name,
                        service=booking.service_name,
                    ),
                )

        holds = await self._repository.holding_reservations(worker_id, self._clock.now())
        if not holds.ok:
            return _error(worker_id, holds.detail)

        for hold in holds.value or []:
            hold_slot = TimeSlot.from_bounds(hold.start_time, hold.end_time, self._repository.timezone)
            if overlaps(requested_slot, hold_slot):
                return WorkerAvailability(
                    worker_id=worker_id,
                    available=False,
                    reason=AvailabilityReason.TIME_CONFLICT,
                    conflicting_booking=ConflictingBooking(
                        id=hold.booking_id or hold.id,
                        date=hold_slot.date.isoformat(),
                        time=hold_slot.label,
                    ),
                )

        return WorkerAvailability(worker_id=worker_id, available=True, reason=AvailabilityReason.FREE)


def _error(worker_id: str, detail: str | None) -> WorkerAvailability:
    return WorkerAvailability(
        worker_id=worker_id,
        available=False,
        reason=AvailabilityReason.ERROR,
        error=detail,
    )
