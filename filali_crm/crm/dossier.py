"""Client dossier assembly.

A dossier is what the client detail view shows: the client record, the
payments and calendar events matched to the client by email, and the merged
activity timeline. It is rebuilt from scratch on every request.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, TypeVar

from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.models import CalendarEvent, Dossier, Transaction, notes_of
from filali_crm.crm.timeline import build_timeline
from filali_crm.integrations.payments import normalize_email

if TYPE_CHECKING:
    from filali_crm.integrations.calendar import CalendarClient
    from filali_crm.integrations.payments import PaymentsClient
    from filali_crm.models.client import Client

logger = get_logger(__name__)

T = TypeVar("T")

EVENT_LOOKBACK_DAYS = 365
EVENT_LOOKAHEAD_DAYS = 90


def events_organized_by(events: list[CalendarEvent], email: str) -> list[CalendarEvent]:
    """Keep only events whose organizer is the given email.

    Events where the client was only an attendee are dropped; see DESIGN.md
    for why this filter is kept.
    """
    wanted = normalize_email(email)
    return [
        event for event in events if normalize_email(event.organizer_email) == wanted
    ]


def _or_empty(result: list[T] | BaseException, source: str, client_id: str) -> list[T]:
    """Replace a failed fetch with an empty list, logging the failure."""
    if isinstance(result, BaseException):
        if not isinstance(result, Exception):
            raise result
        logger.warning(
            f"dossier_{source}_fetch_failed",
            client_id=client_id,
            error=str(result),
            error_type=type(result).__name__,
        )
        return []
    return result


async def load_dossier(
    client: Client,
    payments: PaymentsClient,
    calendar: CalendarClient,
    now: datetime | None = None,
) -> Dossier:
    """Assemble the dossier for one client.

    Without an email there is no way to join payments or events, so neither
    collaborator is called. Otherwise both fetches run concurrently and a
    failure in one never hides the other's data.

    Args:
        client: Client as stored.
        payments: Payment collaborator adapter.
        calendar: Calendar collaborator adapter.
        now: Reference time for the event window (tests pass a fixed value).

    Returns:
        Dossier with transactions, events, and timeline; never raises for
        collaborator failures.
    """
    notes = notes_of(client)
    transactions: list[Transaction] = []
    events: list[CalendarEvent] = []

    if client.email:
        now = now or datetime.now(UTC)
        payments_result, events_result = await asyncio.gather(
            payments.transactions_for_email(client.email),
            calendar.get_events(
                start=now - timedelta(days=EVENT_LOOKBACK_DAYS),
                end=now + timedelta(days=EVENT_LOOKAHEAD_DAYS),
                tz=settings.calendar_timezone,
                organizer_email=client.email,
            ),
            return_exceptions=True,
        )
        transactions = _or_empty(payments_result, "payments", client.id)
        events = events_organized_by(
            _or_empty(events_result, "calendar", client.id), client.email
        )

    timeline = build_timeline(notes, transactions, events)
    logger.debug(
        "dossier_built",
        client_id=client.id,
        notes=len(notes),
        transactions=len(transactions),
        events=len(events),
    )

    return Dossier(
        client=client,
        transactions=transactions,
        events=events,
        timeline=timeline,
    )
