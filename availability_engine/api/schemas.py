from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request fields are optional so a missing one is reported as a 400 with a message,
# not a framework validation error.
class CheckAvailabilityRequest(CamelModel):
    company_id: str | None = None
    service_id: str | None = None
    date: str | None = None
    time: str | None = None


class AvailableCompaniesRequest(CamelModel):
    service_id: str | None = None
    date: str | None = None
    time: str | None = None


class RealtimeAvailabilityRequest(CamelModel):
    service_id: str | None = None
    date: str | None = None
    time: str | None = None
    location: str | None = None


class CompanyStatusRequest(CamelModel):
    company_ids: list[str] | None = None


# companyIds is left untyped so a non-list is rejected with a 400 by the route.
class BulkAvailabilityRequest(CamelModel):
    company_ids: Any = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    service_id: str | None = None


class ReserveWorkerRequest(CamelModel):
    company_id: str | None = None
    worker_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    booking_id: str | None = None


class CompanyAvailabilitySchema(CamelModel):
    company_id: str
    service_id: str | None = None
    company_name: str | None = None
    service_name: str | None = None
    available: bool
    can_book: bool
    available_workers: int = 0
    total_workers: int = 0
    reason: str | None = None
    message: str = ""
    last_checked: datetime | None = None
    error: str | None = None


class CheckAvailabilityResponse(CamelModel):
    success: bool = True
    data: CompanyAvailabilitySchema
    timestamp: datetime


class AvailableCompaniesData(CamelModel):
    total_companies: int
    available_companies: int
    companies: list[CompanyAvailabilitySchema] = Field(default_factory=list)
    message: str


class AvailableCompaniesResponse(CamelModel):
    success: bool = True
    data: AvailableCompaniesData
    timestamp: datetime


class RealtimeAvailabilityData(CamelModel):
    can_book: bool
    available_providers: int
    total_providers: int
    companies: list[CompanyAvailabilitySchema] = Field(default_factory=list)
    message: str
    suggestions: list[str] = Field(default_factory=list)


class RealtimeAvailabilityResponse(CamelModel):
    success: bool = True
    available: bool
    data: RealtimeAvailabilityData
    timestamp: datetime


class CompanyStatusSchema(CamelModel):
    is_available: bool
    available_workers: int
    total_workers: int
    last_updated: datetime
    source: str


class StatusSummarySchema(CamelModel):
    total: int
    available: int
    busy: int


class CompanyStatusResponse(CamelModel):
    success: bool = True
    checked_at: datetime
    companies: dict[str, CompanyStatusSchema] = Field(default_factory=dict)
    summary: StatusSummarySchema


class BulkCompanySchema(CamelModel):
    is_available: bool
    available_workers: int = 0
    total_workers: int = 0
    error: str | None = None


class TimeSlotSchema(CamelModel):
    start_time: datetime
    end_time: datetime


class BulkAvailabilityResponse(CamelModel):
    success: bool = True
    checked_at: datetime
    time_slot: TimeSlotSchema
    companies: dict[str, BulkCompanySchema] = Field(default_factory=dict)
    summary: StatusSummarySchema


class ReserveWorkerResponse(CamelModel):
    success: bool
    reserved: bool
    worker_id: str
    booking_id: str | None = None
    reservation_id: str | None = None
    reserved_at: datetime | None = None
    expires_at: datetime | None = None
    message: str


def error_body(message: str, error: str | None = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    body.update(extra)
    return body
