from functools import lru_cache
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.ports.document_store import DocumentStorePort
from availability_engine.application.repository import AvailabilityRepository
from availability_engine.application.use_cases.aggregate_company import CompanyAvailabilityAggregator
from availability_engine.application.use_cases.availability_reactor import AvailabilityChangeReactor
from availability_engine.application.use_cases.batch_availability import BatchAvailabilityCoordinator
from availability_engine.application.use_cases.company_status import CompanyStatusUseCase
from availability_engine.application.use_cases.reservations import ReservationService
from availability_engine.application.use_cases.resolve_worker import WorkerAvailabilityResolver
from availability_engine.core.config import settings
from availability_engine.infrastructure.clock import SystemClock
from availability_engine.infrastructure.store.firestore_store import FirestoreDocumentStore
from availability_engine.infrastructure.store.json_store import JsonDocumentStore
from availability_engine.infrastructure.store.memory_store import MemoryDocumentStore


def get_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(settings.BUSINESS_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logging.getLogger(__name__).warning(
            "Unknown BUSINESS_TIMEZONE, falling back to UTC", extra={"timezone": settings.BUSINESS_TIMEZONE}
        )
        return ZoneInfo("UTC")


@lru_cache
def get_store() -> DocumentStorePort:
    provider = settings.STORE_PROVIDER.lower()
    logger = logging.getLogger(__name__)
    if provider == "firestore":
        logger.info("Using FirestoreDocumentStore", extra={"project_id": settings.FIRESTORE_PROJECT_ID})
        return FirestoreDocumentStore()
    if provider == "json":
        logger.info("Using JsonDocumentStore", extra={"data_dir": settings.JSON_STORE_DIR})
        return JsonDocumentStore(data_dir=settings.JSON_STORE_DIR)
    if provider != "memory":
        raise ValueError(f"Unknown STORE_PROVIDER: {settings.STORE_PROVIDER!r}")
    logger.info("Using MemoryDocumentStore")
    return MemoryDocumentStore()


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock(get_timezone())


@lru_cache
def get_repository() -> AvailabilityRepository:
    return AvailabilityRepository(
        store=get_store(),
        timezone_=get_timezone(),
        timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
        bookings_collection=settings.BOOKINGS_COLLECTION,
        workers_collection=settings.WORKERS_COLLECTION,
        offerings_collection=settings.OFFERINGS_COLLECTION,
        snapshots_collection=settings.SNAPSHOTS_COLLECTION,
        reservations_collection=settings.RESERVATIONS_COLLECTION,
    )


@lru_cache
def get_resolver() -> WorkerAvailabilityResolver:
    return WorkerAvailabilityResolver(repository=get_repository(), clock=get_clock())


@lru_cache
def get_aggregator() -> CompanyAvailabilityAggregator:
    return CompanyAvailabilityAggregator(
        repository=get_repository(),
        resolver=get_resolver(),
        clock=get_clock(),
        max_concurrency=settings.MAX_CONCURRENCY,
        snapshot_ttl_seconds=settings.SNAPSHOT_TTL_SECONDS,
        window_hours=settings.AVAILABILITY_WINDOW_HOURS,
    )


@lru_cache
def get_batch_coordinator() -> BatchAvailabilityCoordinator:
    return BatchAvailabilityCoordinator(
        repository=get_repository(),
        aggregator=get_aggregator(),
        max_concurrency=settings.MAX_CONCURRENCY,
    )


@lru_cache
def get_reactor() -> AvailabilityChangeReactor:
    return AvailabilityChangeReactor(
        aggregator=get_aggregator(),
        bookings_collection=settings.BOOKINGS_COLLECTION,
        workers_collection=settings.WORKERS_COLLECTION,
    )


@lru_cache
def get_reservation_service() -> ReservationService:
    return ReservationService(
        repository=get_repository(),
        resolver=get_resolver(),
        aggregator=get_aggregator(),
        clock=get_clock(),
        hold_seconds=settings.RESERVATION_HOLD_SECONDS,
        max_concurrency=settings.MAX_CONCURRENCY,
    )


@lru_cache
def get_company_status_use_case() -> CompanyStatusUseCase:
    return CompanyStatusUseCase(
        repository=get_repository(),
        aggregator=get_aggregator(),
        clock=get_clock(),
        cache_seconds=settings.STATUS_CACHE_SECONDS,
        max_concurrency=settings.MAX_CONCURRENCY,
    )
