from __future__ import annotations

import logging
from datetime import date

from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.utils.concurrency import bounded_gather
from availability_engine.domain.entities.availability import BatchAvailability, CompanyBatchEntry
from availability_engine.domain.entities.offering import CompanyOffering
from availability_engine.domain.entities.time_slot import TimeSlot


class BatchAvailabilityCoordinator:
    def __init__(
        self,
        repository: AvailabilityRepository,
        aggregator: CompanyAvailabilityAggregator,
        max_concurrency: int = 0,
    ) -> None:
        self._repository = repository
        self._aggregator = aggregator
        self._max_concurrency = max_concurrency
        self._logger = logging.getLogger(__name__)

    async def batch_check(self, service_id: str, slot_date: date | str, time_label: str) -> BatchAvailability:
        """
        Check every company offering the service for one slot.

        All companies are checked concurrently and the call returns only after every
        check has settled. A company whose check raises is reported unavailable with
        its error; the rest of the batch is unaffected.

        Raises:
            InvalidSlotFormat: date/time cannot be parsed (before any I/O)
            DataFetchError: the offerings query itself failed
        """
        slot = TimeSlot.parse(slot_date, time_label, self._repository.timezone)

        offerings_result = await self._repository.active_offerings(service_id)

        offerings: dict[str, CompanyOffering] = {}
        for offering in offerings_result.unwrap() or []:
            offerings.setdefault(offering.company_id, offering)

        entries = await bounded_gather(
            (self._check_company(offering, service_id, slot) for offering in offerings.values()),
            self._max_concurrency,
        )
        available_only = [entry for entry in entries if entry.available]

        self._logger.info(
            "Batch availability checked",
            extra={
                "service_id": service_id,
                "total_companies": len(entries),
                "available_companies": len(available_only),
            },
        )
        return BatchAvailability(
            total_companies=len(entries),
            available_companies=len(available_only),
            companies=entries,
            available_only=available_only,
        )

    async def _check_company(self, offering: CompanyOffering, service_id: str, slot: TimeSlot) -> CompanyBatchEntry:
        try:
            result = await self._aggregator.aggregate_for_slot(offering.company_id, service_id, slot)
        except Exception as e:
            self._logger.exception(
                "Company availability check failed",
                extra={"company_id": offering.company_id, "service_id": service_id, "error": str(e)},
            )
            return CompanyBatchEntry(
                company_id=offering.company_id,
                company_name=offering.company_name,
                service_name=offering.service_name,
                available=False,
                message="Unable to check availability",
                error=str(e),
            )

        return CompanyBatchEntry(
            company_id=offering.company_id,
            company_name=offering.company_name,
            service_name=offering.service_name,
            available=result.available,
            available_workers=len(result.available_workers),
            total_workers=result.total_workers,
            message=result.message,
            reason=result.reason,
            error=result.error,
            last_checked=result.last_checked,
        )
