"""GET /api/v1/events — recent chunk lifecycle events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from isoworld.api.dependencies import get_session
from isoworld.api.schemas import EventSchema
from isoworld.api.session import WorldSession

router = APIRouter()


@router.get("/events", response_model=list[EventSchema])
def get_events(
    since_tick: int | None = Query(None, ge=0, description="Only events at or after this tick"),
    limit: int = Query(100, gt=0, le=2000),
    session: WorldSession = Depends(get_session),
) -> list[EventSchema]:
    log = session.event_log
    events = log.since_tick(since_tick)[-limit:] if since_tick is not None else log.latest(limit)
    return [
        EventSchema(
            tick=e.tick,
            category=e.category,
            message=e.message,
            chunk=list(e.chunk) if e.chunk is not None else None,
        )
        for e in events
    ]
