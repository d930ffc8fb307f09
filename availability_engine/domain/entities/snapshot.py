from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


def snapshot_key(company_id: str, service_id: str | None = None) -> str:
    """Deterministic document id, one snapshot per company (and service)."""
    if service_id:
        return f"{company_id}:{service_id}"
    return company_id


@dataclass(frozen=True)
class CompanyAvailabilitySnapshot:
    company_id: str
    service_id: str | None
    is_available: bool
    available_workers: int
    total_workers: int
    last_updated: datetime
    valid_until: datetime
    requested_slot: str | None = None

    @property
    def key(self) -> str:
        return snapshot_key(self.company_id, self.service_id)

    def is_fresh(self, now: datetime, max_age_seconds: float) -> bool:
        if now >= self.valid_until:
            return False
        return (now - self.last_updated).total_seconds() < max_age_seconds

    def to_document(self) -> dict[str, Any]:
        return {
            "companyId": self.company_id,
            "serviceId": self.service_id,
            "isAvailable": self.is_available,
            "availableWorkers": self.available_workers,
            "totalWorkers": self.total_workers,
            "lastUpdated": self.last_updated.isoformat(),
            "validUntil": self.valid_until.isoformat(),
            "requestedSlot": self.requested_slot,
        }

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> CompanyAvailabilitySnapshot | None:
        try:
            return cls(
                company_id=str(doc["companyId"]),
                service_id=doc.get("serviceId"),
                is_available=bool(doc.get("isAvailable")),
                available_workers=int(doc.get("availableWorkers") or 0),
                total_workers=int(doc.get("totalWorkers") or 0),
                last_updated=_parse_ts(doc["lastUpdated"]),
                valid_until=_parse_ts(doc["validUntil"]),
                requested_slot=doc.get("requestedSlot"),
            )
        except (KeyError, TypeError, ValueError):
            return None


def _parse_ts(value: Any) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
