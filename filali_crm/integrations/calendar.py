"""Calendar collaborator: serverless proxy over the business Outlook calendar."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
from pydantic import ValidationError

from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import CollaboratorError
from filali_crm.crm.models import CalendarEvent

logger = get_logger(__name__)

SOURCE = "calendar"


def _parse_events(items: list) -> list[CalendarEvent]:
    """Validate events one by one, skipping any the model rejects."""
    events: list[CalendarEvent] = []
    for item in items:
        try:
            events.append(CalendarEvent.model_validate(item))
        except ValidationError as exc:
            event_id = item.get("id") if isinstance(item, dict) else None
            logger.warning(
                "calendar_event_skipped",
                event_id=event_id,
                errors=exc.error_count(),
            )
    return events


class CalendarClient:
    """Async adapter for the calendar endpoint.

    The endpoint returns a Graph-style `{"value": [...]}` envelope.
    """

    def __init__(self, http: httpx.AsyncClient, api_url: str | None = None):
        self._http = http
        self._api_url = api_url or settings.calendar_api_url

    async def get_events(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        calendar_id: str | None = None,
        tz: str | None = None,
        top: int | None = None,
        organizer_email: str | None = None,
    ) -> list[CalendarEvent]:
        """Fetch events in a time range.

        Args:
            start: Range start.
            end: Range end.
            calendar_id: Calendar to read; the collaborator default otherwise.
            tz: Time zone name for returned date-times.
            top: Maximum number of events.
            organizer_email: Ask the collaborator to filter by organizer. It may
                still return other events, so callers filter again.

        Returns:
            List of CalendarEvent.

        Raises:
            CollaboratorError: On transport failure, non-2xx, non-JSON, or a
                malformed envelope. Individual malformed events are skipped.
        """
        params: dict[str, str] = {}
        if start:
            params["start"] = start.isoformat()
        if end:
            params["end"] = end.isoformat()
        if calendar_id:
            params["calendarId"] = calendar_id
        if tz:
            params["tz"] = tz
        if top:
            params["top"] = str(top)
        if organizer_email:
            params["organizer"] = organizer_email

        try:
            response = await self._http.get(self._api_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "calendar_http_error",
                status_code=exc.response.status_code,
            )
            raise CollaboratorError(
                SOURCE,
                f"Calendar API error: {exc.response.status_code} "
                f"{exc.response.reason_phrase}",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("calendar_transport_error", error=str(exc))
            raise CollaboratorError(SOURCE, str(exc)) from exc

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error("calendar_non_json_response", content_type=content_type)
            raise CollaboratorError(SOURCE, "Calendar API returned non-JSON response")

        try:
            items = response.json().get("value") or []
            if not isinstance(items, list):
                raise ValueError("value is not a list")
        except (ValueError, AttributeError) as exc:
            logger.error("calendar_malformed_response", error=str(exc))
            raise CollaboratorError(
                SOURCE, "Failed to parse calendar API response"
            ) from exc

        return _parse_events(items)

    async def todays_events(self, now: datetime | None = None) -> list[CalendarEvent]:
        """Events from midnight today to midnight tomorrow."""
        now = now or datetime.now(UTC)
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return await self.get_events(
            start=start,
            end=start + timedelta(days=1),
            tz=settings.calendar_timezone,
        )

    async def upcoming_events(
        self, days: int = 7, now: datetime | None = None
    ) -> list[CalendarEvent]:
        """Events from now over the next `days` days."""
        now = now or datetime.now(UTC)
        return await self.get_events(
            start=now,
            end=now + timedelta(days=days),
            tz=settings.calendar_timezone,
            top=50,
        )
