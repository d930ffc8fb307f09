from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Mapping


class ReservationStatus(str, Enum):
    reserved = "reserved"
    expired = "expired"
    confirmed = "confirmed"


@dataclass(frozen=True)
class WorkerReservation:
    id: str
    worker_id: str
    company_id: str | None
    booking_id: str | None
    start_time: datetime
    end_time: datetime
    status: str
    expires_at: datetime | None

    @classmethod
    def from_document(
        cls, doc_id: str, doc: Mapping[str, Any], tz: tzinfo = timezone.utc
    ) -> WorkerReservation | None:
        """Naive timestamps are read in `tz`, the same way bookings are."""
        start = _as_datetime(doc.get("startTime"), tz)
        end = _as_datetime(doc.get("endTime"), tz)
        if start is None or end is None or not doc.get("workerId"):
            return None
        return cls(
            id=doc_id,
            worker_id=str(doc["workerId"]),
            company_id=doc.get("companyId"),
            booking_id=doc.get("bookingId"),
            start_time=start,
            end_time=end,
            status=str(doc.get("status") or ""),
            expires_at=_as_datetime(doc.get("expiresAt"), tz),
        )

    def is_holding(self, now: datetime) -> bool:
        if self.status != ReservationStatus.reserved.value:
            return False
        return self.expires_at is None or self.expires_at > now

    def has_lapsed(self, now: datetime) -> bool:
        return (
            self.status == ReservationStatus.reserved.value
            and self.expires_at is not None
            and self.expires_at < now
        )


def _as_datetime(value: Any, tz: tzinfo) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif not value:
        return None
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)
