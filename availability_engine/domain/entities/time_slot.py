from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo, timezone

from availability_engine.application.exceptions import InvalidSlotFormat

LABEL_SEPARATOR = " - "

# Tried in order; 12-hour forms first so "12:00 PM" is not read as 24-hour.
TIME_LABEL_FORMATS = (
    "%I:%M %p",
    "%I %p",
    "%I:%M%p",
    "%I%p",
    "%H:%M",
)


def parse_time_label(label: str) -> time:
    normalized = " ".join(str(label).strip().upper().split())
    for fmt in TIME_LABEL_FORMATS:
        try:
            return datetime.strptime(normalized, fmt).time()
        except ValueError:
            continue
    raise InvalidSlotFormat(f"Unrecognised time label: {label!r}")


def parse_slot_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidSlotFormat(f"Unrecognised date: {value!r}") from None


def format_time_label(value: datetime) -> str:
    return value.strftime("%I:%M %p")


@dataclass(frozen=True)
class TimeSlot:
    """Half-open interval [start, end) anchored to a calendar date."""

    date: date
    start_label: str
    end_label: str
    start: datetime
    end: datetime

    @classmethod
    def parse(cls, slot_date: date | str, label: str, tz: tzinfo = timezone.utc) -> TimeSlot:
        """
        Build a slot from a date and a "10:00 AM - 12:00 PM" style label.
        Raises InvalidSlotFormat for anything that is not exactly two parseable times
        or whose end precedes its start.
        """
        if not isinstance(label, str):
            raise InvalidSlotFormat(f"Slot label must be a string, got {type(label).__name__}")
        parts = label.split(LABEL_SEPARATOR)
        if len(parts) != 2:
            raise InvalidSlotFormat(f"Slot label must look like 'START - END': {label!r}")

        day = parse_slot_date(slot_date)
        start_label, end_label = parts[0].strip(), parts[1].strip()
        start = datetime.combine(day, parse_time_label(start_label), tzinfo=tz)
        end = datetime.combine(day, parse_time_label(end_label), tzinfo=tz)
        if end < start:
            raise InvalidSlotFormat(f"Slot ends before it starts: {label!r}")
        return cls(date=day, start_label=start_label, end_label=end_label, start=start, end=end)

    @classmethod
    def from_bounds(cls, start: datetime, end: datetime, tz: tzinfo = timezone.utc) -> TimeSlot:
        if start.tzinfo is None:
            start = start.replace(tzinfo=tz)
        if end.tzinfo is None:
            end = end.replace(tzinfo=tz)
        if end < start:
            raise InvalidSlotFormat(f"Slot ends before it starts: {start.isoformat()} > {end.isoformat()}")
        return cls(
            date=start.date(),
            start_label=format_time_label(start),
            end_label=format_time_label(end),
            start=start,
            end=end,
        )

    @property
    def label(self) -> str:
        return f"{self.start_label}{LABEL_SEPARATOR}{self.end_label}"

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def overlaps(self, other: TimeSlot) -> bool:
        return overlaps(self, other)

    def describe(self) -> str:
        return f"{self.date.isoformat()} {self.label}"


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    # Touching endpoints do not overlap; empty slots overlap nothing.
    if a.is_empty or b.is_empty:
        return False
    return a.start < b.end and b.start < a.end
