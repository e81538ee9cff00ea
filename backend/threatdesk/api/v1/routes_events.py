# backend/threatdesk/api/v1/routes_events.py

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from threatdesk.api.deps import get_detection_engine, get_event_store
from threatdesk.core.config import settings
from threatdesk.schemas.detection import IngestResponse
from threatdesk.schemas.events import EventIngestRequest, EventListResponse
from threatdesk.services.detection.detection_engine import DetectionEngine
from threatdesk.services.events.event_store_service import EventStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/events",
    tags=["events"],
)


def _to_ingest_requests(payload: Any) -> List[EventIngestRequest]:
    entries = payload if isinstance(payload, list) else [payload]
    out: List[EventIngestRequest] = []
    for entry in entries:
        if not isinstance(entry, dict):
            entry = {"raw_payload": {"value": entry}}
        out.append(EventIngestRequest.model_validate(entry))
    return out


@router.post(
    "/batch",
    response_model=IngestResponse,
    response_model_exclude_none=True,
    summary="Ingest one or many normalized events",
)
async def ingest_events(
    payload: Any = Body(...),
    detect: Optional[bool] = Query(
        None, description="Run detection after ingest (defaults to DETECT_ON_INGEST)."
    ),
    events: EventStore = Depends(get_event_store),
    engine: DetectionEngine = Depends(get_detection_engine),
) -> IngestResponse:
    """
    Store a batch of normalized events in one transaction (all or nothing),
    then optionally run the detection rules over the updated store.
    """
    entries = _to_ingest_requests(payload)
    stored = events.append(entries)

    run_detection = settings.DETECT_ON_INGEST if detect is None else detect
    if not run_detection:
        return IngestResponse(logs_ingested=stored)

    result = await engine.run_all()
    return IngestResponse(
        logs_ingested=stored,
        alerts_generated=result.total,
        detection_summary=result.summary(),
    )


@router.get("", response_model=EventListResponse, summary="List recent events")
def list_events(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    events: EventStore = Depends(get_event_store),
) -> EventListResponse:
    logs = events.list_events(limit=limit, offset=offset)
    return EventListResponse(count=len(logs), logs=logs)
