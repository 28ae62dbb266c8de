"""Webhook dispatcher for outbound email batches and new calendar events.

The dispatcher has no idempotency key. Nothing here retries: a failed call
raises DispatchError and the user decides whether to submit again.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel

from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import DispatchError

logger = get_logger(__name__)


class EventRequest(BaseModel):
    """A calendar event to be created through the dispatcher."""

    subject: str = ""
    start: str | None = None
    end: str | None = None
    time_zone: str | None = None
    location: str | None = None
    description: str | None = None
    attendees: list[str] | None = None
    is_all_day: bool = False
    allow_new_time_proposals: bool = True
    is_online_meeting: bool = True
    online_meeting_provider: str = "teamsForBusiness"

    def to_graph_payload(self, default_time_zone: str) -> dict[str, Any]:
        """Render the Graph-style body the webhook forwards; absent keys are omitted."""
        time_zone = self.time_zone or default_time_zone
        payload: dict[str, Any] = {
            "subject": self.subject.strip(),
            "start": {"dateTime": self.start, "timeZone": time_zone},
            "end": {"dateTime": self.end, "timeZone": time_zone},
            "isAllDay": self.is_all_day,
            "allowNewTimeProposals": self.allow_new_time_proposals,
            "isOnlineMeeting": self.is_online_meeting,
            "onlineMeetingProvider": self.online_meeting_provider,
        }
        if self.description:
            payload["body"] = {"contentType": "HTML", "content": self.description}
        if self.location:
            payload["location"] = {"displayName": self.location}
        if self.attendees:
            payload["attendees"] = [
                {
                    "emailAddress": {
                        "address": email.strip(),
                        "name": email.strip().split("@")[0],
                    },
                    "type": "required",
                }
                for email in self.attendees
                if email.strip()
            ]
        return payload


class CreatedEvent(BaseModel):
    event_id: str | None = None
    message: str = "Event created successfully"


class MassEmailReceipt(BaseModel):
    recipients: int
    message: str = ""


class DispatcherClient:
    """Async adapter for the email and event webhooks."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        mass_email_url: str | None = None,
        event_url: str | None = None,
    ):
        self._http = http
        self._mass_email_url = mass_email_url or settings.mass_email_webhook_url
        self._event_url = event_url or settings.event_webhook_url

    async def _post(self, url: str, payload: dict[str, Any], action: str) -> httpx.Response:
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            logger.error(
                "dispatch_http_error",
                action=action,
                status_code=exc.response.status_code,
            )
            raise DispatchError(f"HTTP error! status: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("dispatch_transport_error", action=action, error=str(exc))
            raise DispatchError(str(exc)) from exc

    async def send_mass_email(self, items: list[dict[str, Any]]) -> MassEmailReceipt:
        """Send every rendered email in one request.

        The batch succeeds or fails as a whole.

        Raises:
            DispatchError: If the webhook rejects the batch.
        """
        await self._post(self._mass_email_url, {"emails": items}, "mass_email")
        logger.info("mass_email_dispatched", recipients=len(items))
        return MassEmailReceipt(
            recipients=len(items),
            message=f"Mass email sent successfully to {len(items)} clients!",
        )

    async def create_event(self, request: EventRequest) -> CreatedEvent:
        """Create a calendar event.

        Raises:
            DispatchError: If the webhook rejects the event.
        """
        response = await self._post(
            self._event_url,
            request.to_graph_payload(settings.calendar_timezone),
            "create_event",
        )
        try:
            body = response.json()
        except ValueError:
            body = {}
        event_id = None
        if isinstance(body, dict):
            event_id = body.get("id") or body.get("eventId")
        logger.info("calendar_event_dispatched", event_id=event_id)
        return CreatedEvent(event_id=event_id)
