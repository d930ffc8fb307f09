from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo, timezone
from enum import Enum
from typing import Any, Mapping, Union

from availability_engine.application.exceptions import InvalidSlotFormat
from availability_engine.domain.entities.time_slot import (
    LABEL_SEPARATOR,
    TimeSlot,
    parse_slot_date,
    parse_time_label,
)

DEFAULT_DURATION_MINUTES = 60


class BookingStatus(str, Enum):
    pending = "pending"
    assigned = "assigned"
    in_progress = "in-progress"
    confirmed = "confirmed"
    trip_ended = "tripEnded"
    expired = "expired"
    completed = "completed"
    cancelled = "cancelled"


BLOCKING_STATUSES = frozenset(
    {
        BookingStatus.pending.value,
        BookingStatus.assigned.value,
        BookingStatus.in_progress.value,
        BookingStatus.confirmed.value,
    }
)

STATUS_ALIASES = {"in_progress": BookingStatus.in_progress.value}


def canonical_status(status: Any) -> str:
    value = str(status or "").strip()
    return STATUS_ALIASES.get(value, value)


def is_blocking_status(status: Any) -> bool:
    return canonical_status(status) in BLOCKING_STATUSES


@dataclass(frozen=True)
class LabelledSlot:
    selected_date: str
    selected_time: str  # "10:00 AM - 12:00 PM"


@dataclass(frozen=True)
class ScheduledSlot:
    scheduled_date: str
    scheduled_time: str  # "10:00 AM", optionally a full "START - END" label
    duration_minutes: int = DEFAULT_DURATION_MINUTES


@dataclass(frozen=True)
class StructuredSlot:
    start_time: datetime | str
    end_time: datetime | str


SlotSource = Union[LabelledSlot, ScheduledSlot, StructuredSlot]


def slot_source_from_document(doc: Mapping[str, Any]) -> SlotSource | None:
    """Pick the slot shape a stored booking uses, or None when it carries no usable time fields."""
    if doc.get("selectedDate") and doc.get("selectedTime"):
        return LabelledSlot(selected_date=str(doc["selectedDate"]), selected_time=str(doc["selectedTime"]))
    if doc.get("scheduledDate") and doc.get("scheduledTime"):
        return ScheduledSlot(
            scheduled_date=str(doc["scheduledDate"]),
            scheduled_time=str(doc["scheduledTime"]),
            duration_minutes=_duration_minutes(doc.get("duration")),
        )
    if doc.get("startTime") and doc.get("endTime"):
        return StructuredSlot(start_time=doc["startTime"], end_time=doc["endTime"])
    return None


def to_time_slot(source: SlotSource, tz: tzinfo = timezone.utc) -> TimeSlot:
    if isinstance(source, LabelledSlot):
        return TimeSlot.parse(source.selected_date, source.selected_time, tz)
    if isinstance(source, ScheduledSlot):
        if LABEL_SEPARATOR in source.scheduled_time:
            return TimeSlot.parse(source.scheduled_date, source.scheduled_time, tz)
        day = parse_slot_date(source.scheduled_date)
        start = datetime.combine(day, parse_time_label(source.scheduled_time), tzinfo=tz)
        return TimeSlot.from_bounds(start, start + timedelta(minutes=source.duration_minutes), tz)
    if isinstance(source, StructuredSlot):
        return TimeSlot.from_bounds(_to_datetime(source.start_time), _to_datetime(source.end_time), tz)
    raise InvalidSlotFormat(f"Unsupported slot source: {type(source).__name__}")


def normalize_booking_slot(doc: Mapping[str, Any], tz: tzinfo = timezone.utc) -> TimeSlot | None:
    source = slot_source_from_document(doc)
    if source is None:
        return None
    try:
        return to_time_slot(source, tz)
    except InvalidSlotFormat:
        return None


@dataclass(frozen=True)
class Booking:
    id: str
    assigned_worker_id: str | None
    company_id: str | None
    status: str
    slot: TimeSlot | None
    customer_name: str | None = None
    service_name: str | None = None

    @classmethod
    def from_document(cls, doc_id: str, doc: Mapping[str, Any], tz: tzinfo = timezone.utc) -> Booking:
        return cls(
            id=doc_id,
            assigned_worker_id=doc.get("assignedWorker"),
            company_id=doc.get("companyId"),
            status=canonical_status(doc.get("status")),
            slot=normalize_booking_slot(doc, tz),
            customer_name=doc.get("customerName"),
            service_name=doc.get("serviceName"),
        )

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES


def _duration_minutes(value: Any) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        return DEFAULT_DURATION_MINUTES
    return minutes if minutes > 0 else DEFAULT_DURATION_MINUTES


def _to_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise InvalidSlotFormat(f"Unrecognised timestamp: {value!r}") from None
