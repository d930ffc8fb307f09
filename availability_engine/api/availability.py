from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from availability_engine.api.schemas import (
    AvailableCompaniesData,
    AvailableCompaniesRequest,
    AvailableCompaniesResponse,
    BulkAvailabilityRequest,
    BulkAvailabilityResponse,
    BulkCompanySchema,
    CheckAvailabilityRequest,
    CheckAvailabilityResponse,
    CompanyAvailabilitySchema,
    CompanyStatusRequest,
    CompanyStatusResponse,
    CompanyStatusSchema,
    RealtimeAvailabilityData,
    RealtimeAvailabilityRequest,
    RealtimeAvailabilityResponse,
    ReserveWorkerRequest,
    ReserveWorkerResponse,
    StatusSummarySchema,
    TimeSlotSchema,
    error_body,
)
from availability_engine.application.exceptions import InvalidSlotFormat
from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.use_cases.batch_availability import BatchAvailabilityCoordinator
from availability_engine.application.use_cases.company_status import CompanyStatusUseCase
from availability_engine.application.use_cases.reservations import ReservationService
from availability_engine.domain.entities.availability import AvailabilityResult, CompanyBatchEntry
from availability_engine.wiring.dependencies import (
    get_aggregator,
    get_batch_coordinator,
    get_clock,
    get_company_status_use_case,
    get_reservation_service,
)

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)

NO_PROVIDER_SUGGESTIONS = [
    "Try selecting a different time slot",
    "Check availability for tomorrow",
    "Contact service providers directly",
]


def _missing(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_body(message))


def _internal_error(e: Exception, message: str = "Internal server error", **extra) -> JSONResponse:
    return JSONResponse(status_code=500, content=error_body(message, error=str(e), **extra))


def _from_result(result: AvailabilityResult) -> CompanyAvailabilitySchema:
    return CompanyAvailabilitySchema(
        company_id=result.company_id,
        service_id=result.service_id,
        available=result.available,
        can_book=result.available,
        available_workers=len(result.available_workers),
        total_workers=result.total_workers,
        reason=result.reason.value,
        message=result.message,
        last_checked=result.last_checked,
        error=result.error,
    )


def _from_entry(entry: CompanyBatchEntry, service_id: str) -> CompanyAvailabilitySchema:
    return CompanyAvailabilitySchema(
        company_id=entry.company_id,
        service_id=service_id,
        company_name=entry.company_name,
        service_name=entry.service_name,
        available=entry.available,
        can_book=entry.available,
        available_workers=entry.available_workers,
        total_workers=entry.total_workers,
        reason=entry.reason.value if entry.reason else None,
        message=entry.message,
        last_checked=entry.last_checked,
        error=entry.error,
    )


@router.post("/check-availability", response_model=CheckAvailabilityResponse)
async def check_availability(
    req: CheckAvailabilityRequest,
    aggregator: CompanyAvailabilityAggregator = Depends(get_aggregator),
    clock: ClockPort = Depends(get_clock),
):
    if not (req.company_id and req.service_id and req.date and req.time):
        return _missing("Missing required parameters: companyId, serviceId, date, time")

    logger.info(
        "Availability check requested",
        extra={"company_id": req.company_id, "service_id": req.service_id, "slot": f"{req.date} {req.time}"},
    )
    try:
        result = await aggregator.check_for_app(req.company_id, req.service_id, req.date, req.time)
    except InvalidSlotFormat as e:
        return JSONResponse(status_code=400, content=error_body(str(e)))
    except Exception as e:
        logger.exception("Availability check failed", extra={"error": str(e)})
        return _internal_error(e)

    return CheckAvailabilityResponse(data=_from_result(result), timestamp=clock.now())


@router.post("/get-available-companies", response_model=AvailableCompaniesResponse)
async def get_available_companies(
    req: AvailableCompaniesRequest,
    coordinator: BatchAvailabilityCoordinator = Depends(get_batch_coordinator),
    clock: ClockPort = Depends(get_clock),
):
    if not (req.service_id and req.date and req.time):
        return _missing("Missing required parameters: serviceId, date, time")

    try:
        batch = await coordinator.batch_check(req.service_id, req.date, req.time)
    except InvalidSlotFormat as e:
        return JSONResponse(status_code=400, content=error_body(str(e)))
    except Exception as e:
        logger.exception("Available companies lookup failed", extra={"error": str(e)})
        return _internal_error(e)

    return AvailableCompaniesResponse(
        data=AvailableCompaniesData(
            total_companies=batch.total_companies,
            available_companies=batch.available_companies,
            companies=[_from_entry(entry, req.service_id) for entry in batch.available_only],
            message=(
                f"{batch.available_companies} companies available"
                if batch.available_companies > 0
                else "No companies available for this time slot"
            ),
        ),
        timestamp=clock.now(),
    )


@router.post("/realtime-availability", response_model=RealtimeAvailabilityResponse)
async def realtime_availability(
    req: RealtimeAvailabilityRequest,
    coordinator: BatchAvailabilityCoordinator = Depends(get_batch_coordinator),
    clock: ClockPort = Depends(get_clock),
):
    if not (req.service_id and req.date and req.time):
        return _missing("Missing required parameters: serviceId, date, time")

    if req.location:
        # Accepted for compatibility; results are not filtered by location.
        logger.info("Location supplied with realtime check", extra={"location": req.location})

    try:
        batch = await coordinator.batch_check(req.service_id, req.date, req.time)
    except InvalidSlotFormat as e:
        return JSONResponse(status_code=400, content=error_body(str(e), available=False))
    except Exception as e:
        logger.exception("Realtime availability check failed", extra={"error": str(e)})
        return _internal_error(e, "Unable to check availability", available=False)

    providers = len(batch.available_only)
    return RealtimeAvailabilityResponse(
        available=providers > 0,
        data=RealtimeAvailabilityData(
            can_book=providers > 0,
            available_providers=providers,
            total_providers=batch.total_companies,
            companies=[_from_entry(entry, req.service_id) for entry in batch.available_only],
            message=(
                f"{providers} service providers available"
                if providers > 0
                else "No service providers available for selected time slot"
            ),
            suggestions=list(NO_PROVIDER_SUGGESTIONS) if providers == 0 else [],
        ),
        timestamp=clock.now(),
    )


@router.post("/company-status", response_model=CompanyStatusResponse)
async def company_status(
    req: CompanyStatusRequest,
    use_case: CompanyStatusUseCase = Depends(get_company_status_use_case),
):
    if not req.company_ids:
        return _missing("Missing required parameters: companyIds")

    try:
        report = await use_case.get_status(req.company_ids)
    except Exception as e:
        logger.exception("Company status lookup failed", extra={"error": str(e)})
        return _internal_error(e)

    return CompanyStatusResponse(
        checked_at=report.checked_at,
        companies={
            company_id: CompanyStatusSchema(
                is_available=status.is_available,
                available_workers=status.available_workers,
                total_workers=status.total_workers,
                last_updated=status.last_updated,
                source=status.source,
            )
            for company_id, status in report.companies.items()
        },
        summary=StatusSummarySchema(total=len(report.companies), available=report.available, busy=report.busy),
    )


@router.post("/check-bulk-availability", response_model=BulkAvailabilityResponse)
async def check_bulk_availability(
    req: BulkAvailabilityRequest,
    aggregator: CompanyAvailabilityAggregator = Depends(get_aggregator),
    clock: ClockPort = Depends(get_clock),
):
    company_ids = req.company_ids
    if (
        not isinstance(company_ids, list)
        or not company_ids
        or not all(isinstance(c, str) and c for c in company_ids)
        or req.start_time is None
        or req.end_time is None
    ):
        return _missing("Missing required parameters: companyIds (array), startTime, endTime")

    logger.info("Bulk availability check requested", extra={"companies": len(company_ids)})
    try:
        results = await aggregator.aggregate_many(company_ids, req.start_time, req.end_time, req.service_id)
    except InvalidSlotFormat as e:
        return JSONResponse(status_code=400, content=error_body(str(e)))
    except Exception as e:
        logger.exception("Bulk availability check failed", extra={"error": str(e)})
        return _internal_error(e)

    available = sum(1 for r in results.values() if r.is_available)
    return BulkAvailabilityResponse(
        checked_at=clock.now(),
        time_slot=TimeSlotSchema(start_time=req.start_time, end_time=req.end_time),
        companies={
            company_id: BulkCompanySchema(
                is_available=r.is_available,
                available_workers=r.available_workers,
                total_workers=r.total_workers,
                error=r.error,
            )
            for company_id, r in results.items()
        },
        summary=StatusSummarySchema(total=len(results), available=available, busy=len(results) - available),
    )


@router.post("/reserve-worker", response_model=ReserveWorkerResponse)
async def reserve_worker(
    req: ReserveWorkerRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    if not (req.company_id and req.worker_id and req.start_time and req.end_time):
        return _missing("Missing required parameters: companyId, workerId, startTime, endTime")

    try:
        outcome = await service.reserve(req.company_id, req.worker_id, req.start_time, req.end_time, req.booking_id)
    except InvalidSlotFormat as e:
        return JSONResponse(status_code=400, content=error_body(str(e), reserved=False))
    except Exception as e:
        logger.exception("Worker reservation failed", extra={"worker_id": req.worker_id, "error": str(e)})
        return _internal_error(e, reserved=False)

    return ReserveWorkerResponse(
        success=outcome.reserved,
        reserved=outcome.reserved,
        worker_id=outcome.worker_id,
        booking_id=outcome.booking_id,
        reservation_id=outcome.reservation_id,
        reserved_at=outcome.reserved_at,
        expires_at=outcome.expires_at,
        message=outcome.message,
    )
