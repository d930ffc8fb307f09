from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.utils.concurrency import bounded_gather


@dataclass(frozen=True)
class CompanyStatus:
    company_id: str
    is_available: bool
    available_workers: int
    total_workers: int
    last_updated: datetime
    source: str  # "cache" or "live"


@dataclass(frozen=True)
class CompanyStatusReport:
    checked_at: datetime
    companies: dict[str, CompanyStatus] = field(default_factory=dict)

    @property
    def available(self) -> int:
        return sum(1 for status in self.companies.values() if status.is_available)

    @property
    def busy(self) -> int:
        return len(self.companies) - self.available


class CompanyStatusUseCase:
    """Serve company snapshots while they are fresh, recompute them when they are not."""

    def __init__(
        self,
        repository: AvailabilityRepository,
        aggregator: CompanyAvailabilityAggregator,
        clock: ClockPort,
        cache_seconds: int = 5 * 60,
        max_concurrency: int = 0,
    ) -> None:
        self._repository = repository
        self._aggregator = aggregator
        self._clock = clock
        self._cache_seconds = cache_seconds
        self._max_concurrency = max_concurrency
        self._logger = logging.getLogger(__name__)

    async def get_status(self, company_ids: list[str]) -> CompanyStatusReport:
        unique_ids = list(dict.fromkeys(company_ids))
        statuses = await bounded_gather(
            (self._status_for(company_id) for company_id in unique_ids),
            self._max_concurrency,
        )
        return CompanyStatusReport(
            checked_at=self._clock.now(),
            companies={status.company_id: status for status in statuses},
        )

    async def _status_for(self, company_id: str) -> CompanyStatus:
        now = self._clock.now()
        cached = await self._repository.load_snapshot(company_id)
        snapshot = cached.value if cached.ok else None
        if snapshot is not None and snapshot.is_fresh(now, self._cache_seconds):
            return CompanyStatus(
                company_id=company_id,
                is_available=snapshot.is_available,
                available_workers=snapshot.available_workers,
                total_workers=snapshot.total_workers,
                last_updated=snapshot.last_updated,
                source="cache",
            )

        availability = await self._aggregator.aggregate(company_id)
        self._logger.info("Snapshot stale or missing, recomputed", extra={"company_id": company_id})
        return CompanyStatus(
            company_id=company_id,
            is_available=availability.is_available,
            available_workers=availability.available_workers,
            total_workers=availability.total_workers,
            last_updated=self._clock.now(),
            source="live",
        )
