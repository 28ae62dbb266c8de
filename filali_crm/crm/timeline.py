"""Merge notes, payments, and calendar events into one activity timeline.

Each source keeps time differently (ISO strings on notes and events, unix
seconds on transactions). Everything is normalized to epoch milliseconds here
so the merged list can be sorted on a single key.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from filali_crm.crm.models import (
    ActivityItem,
    ActivityType,
    CalendarEvent,
    Note,
    NoteType,
    Transaction,
)

NOTE_TITLES: dict[NoteType, str] = {
    NoteType.MANUAL: "Note Added",
    NoteType.ACTIVITY: "System Activity",
}
PAYMENT_TITLE = "Payment Received"
EVENT_FALLBACK_DESCRIPTION = "Calendar event"


def to_epoch_millis(value: datetime | str) -> int:
    """Convert a datetime or ISO-8601 string to epoch milliseconds.

    Naive values are taken as UTC. Unparseable strings map to 0 so they sort
    last instead of breaking the view.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def note_to_activity(note: Note) -> ActivityItem:
    """Map a note to a timeline item of type note or activity."""
    return ActivityItem(
        id=note.id,
        type=ActivityType.NOTE if note.type is NoteType.MANUAL else ActivityType.ACTIVITY,
        timestamp=to_epoch_millis(note.created_at),
        title=NOTE_TITLES[note.type],
        description=note.body,
        author=note.author,
        metadata=(
            [change.model_dump() for change in note.changes]
            if note.changes is not None
            else None
        ),
    )


def transaction_to_activity(transaction: Transaction) -> ActivityItem:
    """Map a payment to a timeline item."""
    return ActivityItem(
        id=transaction.session_id,
        type=ActivityType.TRANSACTION,
        timestamp=transaction.created_unix * 1000,
        title=PAYMENT_TITLE,
        description=transaction.description or f"Product {transaction.product_id}",
        amount=transaction.amount_total,
        currency=transaction.currency,
        metadata=transaction.model_dump(),
    )


def event_to_activity(event: CalendarEvent) -> ActivityItem:
    """Map a calendar event to a timeline item."""
    return ActivityItem(
        id=event.id,
        type=ActivityType.EVENT,
        timestamp=to_epoch_millis(event.start.date_time),
        title=event.subject or "",
        description=event.body_preview or EVENT_FALLBACK_DESCRIPTION,
        location=event.location.display_name if event.location else None,
        metadata=event.model_dump(by_alias=True),
    )


def build_timeline(
    notes: Iterable[Note],
    transactions: Iterable[Transaction],
    events: Iterable[CalendarEvent],
) -> list[ActivityItem]:
    """Build a client's activity timeline, most recent first.

    Pure function: the same inputs always give the same output. Items with
    equal timestamps keep source order (notes, then payments, then events).

    Args:
        notes: Notes embedded in the client record.
        transactions: Payments matched to the client.
        events: Calendar events matched to the client.

    Returns:
        List of ActivityItem sorted by timestamp descending.
    """
    items = [
        *(note_to_activity(note) for note in notes),
        *(transaction_to_activity(transaction) for transaction in transactions),
        *(event_to_activity(event) for event in events),
    ]
    items.sort(key=lambda item: item.timestamp, reverse=True)
    return items
