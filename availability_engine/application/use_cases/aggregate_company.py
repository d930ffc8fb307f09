from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.resolve_worker import WorkerAvailabilityResolver
from availability_engine.application.utils.concurrency import bounded_gather
from availability_engine.domain.entities.availability import (
    AvailabilityReason,
    AvailabilityResult,
    CompanyAvailability,
    WorkerStatus,
)
from availability_engine.domain.entities.snapshot import CompanyAvailabilitySnapshot
from availability_engine.domain.entities.time_slot import TimeSlot
from availability_engine.domain.entities.worker import Worker


class CompanyAvailabilityAggregator:
    def __init__(
        self,
        repository: AvailabilityRepository,
        resolver: WorkerAvailabilityResolver,
        clock: ClockPort,
        max_concurrency: int = 0,
        snapshot_ttl_seconds: int = 24 * 60 * 60,
        window_hours: int = 24,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._clock = clock
        self._max_concurrency = max_concurrency
        self._snapshot_ttl = timedelta(seconds=snapshot_ttl_seconds)
        self._window = timedelta(hours=window_hours)
        self._logger = logging.getLogger(__name__)

    async def check_for_app(self, company_id: str, service_id: str, slot_date: date | str, time_label: str) -> AvailabilityResult:
        """Parse the requested slot (InvalidSlotFormat propagates) and aggregate for it."""
        slot = TimeSlot.parse(slot_date, time_label, self._repository.timezone)
        return await self.aggregate_for_slot(company_id, service_id, slot)

    async def aggregate_for_slot(self, company_id: str, service_id: str, slot: TimeSlot) -> AvailabilityResult:
        workers_result = await self._repository.company_workers(company_id, service_id)
        if not workers_result.ok:
            return AvailabilityResult(
                company_id=company_id,
                service_id=service_id,
                available=False,
                reason=AvailabilityReason.ERROR,
                message="Error checking availability",
                last_checked=self._clock.now(),
                error=workers_result.detail,
            )

        workers = workers_result.value or []
        if not workers:
            self._logger.info(
                "No eligible workers for service",
                extra={"company_id": company_id, "service_id": service_id},
            )
            result = AvailabilityResult(
                company_id=company_id,
                service_id=service_id,
                available=False,
                reason=AvailabilityReason.NO_WORKERS_FOR_SERVICE,
                message="No workers available for this service",
                last_checked=self._clock.now(),
            )
            await self._persist(result, slot)
            return result

        available, busy = await self._partition(workers, slot)
        is_available = len(available) > 0
        result = AvailabilityResult(
            company_id=company_id,
            service_id=service_id,
            available=is_available,
            reason=AvailabilityReason.WORKERS_AVAILABLE if is_available else AvailabilityReason.ALL_WORKERS_BUSY,
            message=(
                f"{len(available)} workers available"
                if is_available
                else "All workers are busy for this time slot"
            ),
            available_workers=tuple(available),
            busy_workers=tuple(busy),
            last_checked=self._clock.now(),
        )
        self._logger.info(
            "Company availability aggregated",
            extra={
                "company_id": company_id,
                "service_id": service_id,
                "available_workers": len(available),
                "total_workers": len(workers),
            },
        )
        await self._persist(result, slot)
        return result

    async def aggregate(self, company_id: str, service_id: str | None = None) -> CompanyAvailability:
        """Coarse check: is any worker free for the whole upcoming window. Used for background refresh."""
        workers_result = await self._repository.company_workers(company_id, service_id)
        if not workers_result.ok:
            return CompanyAvailability(
                company_id=company_id,
                service_id=service_id,
                is_available=False,
                available_workers=0,
                total_workers=0,
                error=workers_result.detail,
            )

        workers = workers_result.value or []
        now = self._clock.now()
        free_flags = await bounded_gather(
            (self._resolver.is_free_between(w.id, now, now + self._window) for w in workers),
            self._max_concurrency,
        )
        available_count = sum(1 for free in free_flags if free)
        availability = CompanyAvailability(
            company_id=company_id,
            service_id=service_id,
            is_available=available_count > 0,
            available_workers=available_count,
            total_workers=len(workers),
        )
        await self._save_snapshot(
            CompanyAvailabilitySnapshot(
                company_id=company_id,
                service_id=service_id,
                is_available=availability.is_available,
                available_workers=available_count,
                total_workers=len(workers),
                last_updated=now,
                valid_until=now + self._snapshot_ttl,
            )
        )
        self._logger.info(
            "Company window availability updated",
            extra={
                "company_id": company_id,
                "available_workers": available_count,
                "total_workers": len(workers),
            },
        )
        return availability

    async def aggregate_many(
        self, company_ids: list[str], start: datetime, end: datetime, service_id: str | None = None
    ) -> dict[str, CompanyAvailability]:
        """Per-company check over an explicit interval. No snapshot is written."""
        slot = TimeSlot.from_bounds(start, end, self._repository.timezone)
        unique_ids = list(dict.fromkeys(company_ids))
        results = await bounded_gather(
            (self._interval_check(company_id, slot, service_id) for company_id in unique_ids),
            self._max_concurrency,
        )
        return {availability.company_id: availability for availability in results}

    async def _interval_check(self, company_id: str, slot: TimeSlot, service_id: str | None) -> CompanyAvailability:
        try:
            workers_result = await self._repository.company_workers(company_id, service_id)
            workers = workers_result.unwrap() or []
            available, _ = await self._partition(workers, slot)
            return CompanyAvailability(
                company_id=company_id,
                service_id=service_id,
                is_available=len(available) > 0,
                available_workers=len(available),
                total_workers=len(workers),
            )
        except Exception as e:
            self._logger.warning(
                "Interval check failed for company", extra={"company_id": company_id, "error": str(e)}
            )
            return CompanyAvailability(
                company_id=company_id,
                service_id=service_id,
                is_available=False,
                available_workers=0,
                total_workers=0,
                error=str(e),
            )

    async def _partition(self, workers: list[Worker], slot: TimeSlot) -> tuple[list[WorkerStatus], list[WorkerStatus]]:
        outcomes = await bounded_gather(
            (self._resolver.resolve(worker.id, slot) for worker in workers),
            self._max_concurrency,
        )
        by_worker = {outcome.worker_id: outcome for outcome in outcomes}

        available: list[WorkerStatus] = []
        busy: list[WorkerStatus] = []
        for worker in workers:
            outcome = by_worker[worker.id]
            status = WorkerStatus(
                worker_id=worker.id,
                name=worker.name,
                reason=outcome.reason,
                conflicting_booking=outcome.conflicting_booking,
            )
            (available if outcome.available else busy).append(status)
        return available, busy

    async def _persist(self, result: AvailabilityResult, slot: TimeSlot) -> None:
        now = result.last_checked or self._clock.now()
        await self._save_snapshot(
            CompanyAvailabilitySnapshot(
                company_id=result.company_id,
                service_id=result.service_id,
                is_available=result.available,
                available_workers=len(result.available_workers),
                total_workers=result.total_workers,
                last_updated=now,
                valid_until=now + self._snapshot_ttl,
                requested_slot=slot.describe(),
            )
        )

    async def _save_snapshot(self, snapshot: CompanyAvailabilitySnapshot) -> None:
        saved = await self._repository.save_snapshot(snapshot)
        if not saved.ok:
            self._logger.warning(
                "Snapshot write failed; result returned without caching",
                extra={
                    "company_id": snapshot.company_id,
                    "service_id": snapshot.service_id,
                    "error_kind": saved.error.value if saved.error else None,
                    "error": saved.detail,
                },
            )
