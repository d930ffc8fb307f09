from __future__ import annotations

import logging
from typing import Any, Mapping

from availability_engine.application.ports.document_store import DocumentChange, DocumentStorePort, Subscription
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator


class AvailabilityChangeReactor:
    """
    Recomputes company snapshots after booking or worker writes.
    Runs after the write has landed, so nothing here may raise back into the writer.
    """

    def __init__(
        self,
        aggregator: CompanyAvailabilityAggregator,
        bookings_collection: str = "service_bookings",
        workers_collection: str = "service_workers",
    ) -> None:
        self._aggregator = aggregator
        self._bookings_collection = bookings_collection
        self._workers_collection = workers_collection
        self._logger = logging.getLogger(__name__)

    def start(self, store: DocumentStorePort) -> list[Subscription]:
        """Subscribe to both collections. The caller owns and must close the returned handles."""
        return [
            store.on_write(self._bookings_collection, self.handle_change),
            store.on_write(self._workers_collection, self.handle_change),
        ]

    async def handle_change(self, change: DocumentChange) -> list[str]:
        try:
            if change.collection == self._bookings_collection:
                return await self.on_booking_written(change.before, change.after)
            if change.collection == self._workers_collection:
                return await self.on_worker_written(change.before, change.after)
            self._logger.info("Ignoring change for unrelated collection", extra={"collection": change.collection})
            return []
        except Exception as e:
            self._logger.exception(
                "Availability reactor failed",
                extra={"collection": change.collection, "document_id": change.document_id, "error": str(e)},
            )
            return []

    async def on_booking_written(
        self, before: Mapping[str, Any] | None, after: Mapping[str, Any] | None
    ) -> list[str]:
        company_ids = [_company_id(after) or _company_id(before)]
        if before is not None and after is not None:
            # Reassigned to another company: both sides changed.
            company_ids.append(_company_id(before))
        return await self._recompute_all(company_ids, trigger="booking")

    async def on_worker_written(
        self, before: Mapping[str, Any] | None, after: Mapping[str, Any] | None
    ) -> list[str]:
        return await self._recompute_all([_company_id(after) or _company_id(before)], trigger="worker")

    async def _recompute_all(self, company_ids: list[str | None], trigger: str) -> list[str]:
        recomputed: list[str] = []
        for company_id in dict.fromkeys(cid for cid in company_ids if cid):
            if await self._recompute(company_id, trigger):
                recomputed.append(company_id)
        return recomputed

    async def _recompute(self, company_id: str, trigger: str) -> bool:
        try:
            availability = await self._aggregator.aggregate(company_id)
        except Exception as e:
            self._logger.exception(
                "Snapshot recomputation failed",
                extra={"company_id": company_id, "trigger": trigger, "error": str(e)},
            )
            return False
        self._logger.info(
            "Snapshot recomputed after write",
            extra={"company_id": company_id, "trigger": trigger, "is_available": availability.is_available},
        )
        return True


def _company_id(doc: Mapping[str, Any] | None) -> str | None:
    if not doc:
        return None
    value = doc.get("companyId")
    return str(value) if value else None
