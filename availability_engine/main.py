import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from availability_engine.api.availability import router as availability_router
from availability_engine.api.events import router as events_router
from availability_engine.application.use_cases.reservations import sweep_forever
from availability_engine.core.config import settings
from availability_engine.wiring.dependencies import get_reactor, get_reservation_service, get_store

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in (
            "company_id",
            "service_id",
            "worker_id",
            "booking_id",
            "collection",
            "document_id",
            "reason",
            "error_kind",
            "error",
        ):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger(__name__)
    store = get_store()
    try:
        with contextlib.ExitStack() as subscriptions:
            if settings.REACTOR_ENABLED:
                for subscription in get_reactor().start(store):
                    subscriptions.enter_context(subscription)
                logger.info("Availability reactor subscribed")

            sweeper = None
            if settings.SWEEP_INTERVAL_SECONDS > 0:
                sweeper = asyncio.create_task(
                    sweep_forever(get_reservation_service(), settings.SWEEP_INTERVAL_SECONDS)
                )
            try:
                yield
            finally:
                if sweeper is not None:
                    sweeper.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await sweeper
    finally:
        # Subscriptions are closed before the store.
        await store.aclose()
        logger.info("Document store closed")


app = FastAPI(title="Worker Availability Engine", version="1.0.0", lifespan=lifespan)

app.include_router(availability_router, tags=["availability"])
app.include_router(events_router, tags=["events"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
