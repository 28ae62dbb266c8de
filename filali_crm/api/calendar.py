"""Calendar API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from redis.asyncio import Redis

from filali_crm.api.deps import get_calendar, get_dispatcher, get_redis
from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import CollaboratorError
from filali_crm.crm.events import create_calendar_event
from filali_crm.crm.models import CalendarEvent
from filali_crm.integrations.calendar import CalendarClient
from filali_crm.integrations.dispatcher import CreatedEvent, DispatcherClient, EventRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["calendar"])


class EventListResponse(BaseModel):
    """Calendar events plus whether the calendar could be reached."""

    events: list[CalendarEvent]
    available: bool


@router.get("/events", response_model=EventListResponse)
async def list_events(
    view: str = Query(default="upcoming", pattern="^(today|upcoming|range)$"),
    days: int = Query(default=7, ge=1, le=365),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    calendar: CalendarClient = Depends(get_calendar),
) -> EventListResponse:
    """List calendar events for today, the next few days, or an explicit range.

    A calendar outage is logged and returned as an empty, unavailable list so
    dashboards keep rendering.
    """
    try:
        if view == "today":
            events = await calendar.todays_events()
        elif view == "range":
            events = await calendar.get_events(
                start=start, end=end, tz=settings.calendar_timezone
            )
        else:
            events = await calendar.upcoming_events(days=days)
    except CollaboratorError as exc:
        logger.warning("calendar_unavailable", view=view, error=exc.detail)
        return EventListResponse(events=[], available=False)

    return EventListResponse(events=events, available=True)


@router.post("/events", response_model=CreatedEvent, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventRequest,
    dispatcher: DispatcherClient = Depends(get_dispatcher),
    redis_pool: Redis = Depends(get_redis),
) -> CreatedEvent:
    """Create a calendar event through the dispatcher."""
    return await create_calendar_event(dispatcher, redis_pool, payload)
