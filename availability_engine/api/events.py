from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from pydantic import ValidationError

from availability_engine.application.dto.document_change import DocumentWrittenEventDTO
from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.use_cases.availability_reactor import AvailabilityChangeReactor
from availability_engine.core.config import settings
from availability_engine.infrastructure.events.signature import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    verify_event_signature,
)
from availability_engine.wiring.dependencies import get_clock, get_reactor


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/events/document-written")
async def document_written(
    request: Request,
    background_tasks: BackgroundTasks,
    reactor: AvailabilityChangeReactor = Depends(get_reactor),
    clock: ClockPort = Depends(get_clock),
) -> Response:
    body = await request.body()
    if not verify_event_signature(
        body,
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(TIMESTAMP_HEADER),
        settings.EVENTS_SECRET,
        settings.ENV,
        now=clock.now(),
        tolerance_seconds=settings.EVENTS_TOLERANCE_SECONDS,
    ):
        return Response(status_code=403)

    try:
        payload = json.loads(body.decode("utf-8")) if body else {}
        event = DocumentWrittenEventDTO.model_validate(payload)
    except (ValueError, ValidationError):
        logger.exception("Failed to parse document event body")
        return Response(status_code=400)

    if not settings.REACTOR_ENABLED:
        logger.info("REACTOR_ENABLED=false -> ignoring change", extra={"collection": event.collection})
        return Response(status_code=200)

    logger.info(
        "Document change received",
        extra={"collection": event.collection, "document_id": event.document_id},
    )
    background_tasks.add_task(reactor.handle_change, event.to_change())
    return Response(status_code=200)
