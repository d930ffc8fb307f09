from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AvailabilityReason(str, Enum):
    FREE = "FREE"
    TIME_CONFLICT = "TIME_CONFLICT"
    ERROR = "ERROR"
    NO_WORKERS_FOR_SERVICE = "NO_WORKERS_FOR_SERVICE"
    WORKERS_AVAILABLE = "WORKERS_AVAILABLE"
    ALL_WORKERS_BUSY = "ALL_WORKERS_BUSY"


@dataclass(frozen=True)
class ConflictingBooking:
    id: str
    date: str
    time: str
    customer: str | None = None
    service: str | None = None


@dataclass(frozen=True)
class WorkerAvailability:
    worker_id: str
    available: bool
    reason: AvailabilityReason
    conflicting_booking: ConflictingBooking | None = None
    error: str | None = None


@dataclass(frozen=True)
class WorkerStatus:
    worker_id: str
    name: str | None
    reason: AvailabilityReason
    conflicting_booking: ConflictingBooking | None = None


@dataclass(frozen=True)
class AvailabilityResult:
    company_id: str
    service_id: str
    available: bool
    reason: AvailabilityReason
    message: str
    available_workers: tuple[WorkerStatus, ...] = ()
    busy_workers: tuple[WorkerStatus, ...] = ()
    last_checked: datetime | None = None
    error: str | None = None

    @property
    def total_workers(self) -> int:
        return len(self.available_workers) + len(self.busy_workers)


@dataclass(frozen=True)
class CompanyAvailability:
    company_id: str
    service_id: str | None
    is_available: bool
    available_workers: int
    total_workers: int
    error: str | None = None


@dataclass(frozen=True)
class CompanyBatchEntry:
    company_id: str
    company_name: str
    service_name: str
    available: bool
    available_workers: int = 0
    total_workers: int = 0
    message: str = ""
    reason: AvailabilityReason | None = None
    error: str | None = None
    last_checked: datetime | None = None


@dataclass(frozen=True)
class BatchAvailability:
    total_companies: int
    available_companies: int
    companies: list[CompanyBatchEntry] = field(default_factory=list)
    available_only: list[CompanyBatchEntry] = field(default_factory=list)
