"""Calendar export endpoints: projected events, .ics download, Google link."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from src.cycles.calendar_export import (
    ICS_MEDIA_TYPE,
    CycleEvent,
    filter_events,
    generate_google_calendar_url,
    generate_ics_content,
    ics_filename,
    project_events,
)
from src.dependencies import EngineConfig
from src.models.cycles import CalendarRequest, CycleEventRead, GoogleCalendarLinkRead

router = APIRouter(prefix="/calendar", tags=["calendar"])
logger = logging.getLogger("periodtracker.routers.calendar")


def _projected_events(body: CalendarRequest, config: EngineConfig) -> list[CycleEvent]:
    profile = body.resolved_profile(config)
    try:
        events = project_events(
            profile.last_period_date,
            profile.average_cycle_length,
            profile.average_period_length,
            months_ahead=body.months_ahead,
            config=config,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return filter_events(
        events,
        include_period=body.include_period,
        include_fertile=body.include_fertile,
        include_ovulation=body.include_ovulation,
    )


@router.post("/events", response_model=list[CycleEventRead])
async def list_events(body: CalendarRequest, config: EngineConfig) -> Any:
    return _projected_events(body, config)


@router.post("/ics")
async def download_ics(body: CalendarRequest, config: EngineConfig) -> Response:
    events = _projected_events(body, config)
    if not events:
        raise HTTPException(status_code=404, detail="No events to export")

    content = generate_ics_content(events, config=config)
    filename = ics_filename()
    logger.info("Exporting %d events as %s", len(events), filename)
    return Response(
        content=content,
        media_type=ICS_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/google-url", response_model=GoogleCalendarLinkRead)
async def google_calendar_link(body: CycleEventRead, config: EngineConfig) -> Any:
    return GoogleCalendarLinkRead(url=generate_google_calendar_url(body.to_domain(), config=config))
