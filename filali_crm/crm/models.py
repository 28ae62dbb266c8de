"""Domain models for clients, notes, and the activity timeline.

This module defines the shapes the CRM works with:
- Note / FieldChange: immutable journal entries embedded in a client record
- Transaction: one paid Stripe checkout session from the payment collaborator
- CalendarEvent: one event from the calendar collaborator
- ActivityItem: the normalized unit of a client's merged timeline

Notes are stored as JSON on the client row; `Note.to_record()` produces that
JSON form and `Note.model_validate()` reads it back.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from filali_crm.models.client import Client

SYSTEM_AUTHOR = "System"
MANUAL_AUTHOR = "Admin"

CustomValue = str | int | float
"""Scalar allowed as a custom-field value."""


class ClientStatus(str, Enum):
    """Lifecycle status of a client."""

    LEAD = "lead"
    ACTIVE = "active"
    INACTIVE = "inactive"
    LOST = "lost"


class NoteType(str, Enum):
    """Who produced a note."""

    MANUAL = "manual"
    ACTIVITY = "activity"


class ActivityType(str, Enum):
    """Kind of item on a client timeline."""

    NOTE = "note"
    ACTIVITY = "activity"
    TRANSACTION = "transaction"
    EVENT = "event"


class ContactAction(str, Enum):
    """Outbound contact actions that are logged on the client."""

    CALL = "call"
    TEXT = "text"
    FACETIME = "facetime"
    EMAIL = "email"


class FieldChange(BaseModel):
    """One field-level change recorded on an update note."""

    model_config = ConfigDict(frozen=True)

    field: str
    old_value: str
    new_value: str


class Note(BaseModel):
    """Immutable, timestamped journal entry attached to a client."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    body: str
    type: NoteType
    author: str = SYSTEM_AUTHOR
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    changes: list[FieldChange] | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON shape stored on the client row."""
        return self.model_dump(mode="json", exclude_none=True)


class Transaction(BaseModel):
    """A completed checkout session reported by the payment collaborator."""

    model_config = ConfigDict(extra="allow")

    session_id: str
    product_id: str
    created_unix: int
    created_iso: str | None = None
    quantity: int = 1
    amount_total: float = 0
    currency: str = "usd"
    price_id: str | None = None
    description: str | None = None
    customer_email: str | None = None
    customer_id: str | None = None
    payment_intent_id: str | None = None
    payment_link_id: str | None = None


class EventDateTime(BaseModel):
    """Start or end of a calendar event."""

    model_config = ConfigDict(populate_by_name=True)

    date_time: str = Field(alias="dateTime")
    time_zone: str | None = Field(default=None, alias="timeZone")


class EmailAddress(BaseModel):
    """Name/address pair used by the calendar collaborator."""

    name: str | None = None
    address: str | None = None


class EventOrganizer(BaseModel):
    """Organizer block of a calendar event."""

    model_config = ConfigDict(populate_by_name=True)

    email_address: EmailAddress = Field(
        default_factory=EmailAddress, alias="emailAddress"
    )

    @field_validator("email_address", mode="before")
    @classmethod
    def null_address(cls, value: Any) -> Any:
        return {} if value is None else value


class EventLocation(BaseModel):
    """Location block of a calendar event."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str | None = Field(default=None, alias="displayName")


class CalendarEvent(BaseModel):
    """An event returned by the calendar collaborator."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    subject: str | None = None
    start: EventDateTime
    end: EventDateTime
    organizer: EventOrganizer = Field(default_factory=EventOrganizer)
    location: EventLocation | None = None
    body_preview: str | None = Field(default=None, alias="bodyPreview")
    web_link: str | None = Field(default=None, alias="webLink")
    is_all_day: bool = Field(default=False, alias="isAllDay")

    @field_validator("organizer", mode="before")
    @classmethod
    def null_organizer(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def organizer_email(self) -> str | None:
        """Organizer address, if the collaborator supplied one."""
        return self.organizer.email_address.address


class ActivityItem(BaseModel):
    """One normalized entry on a client's merged timeline. Never persisted."""

    id: str
    type: ActivityType
    timestamp: int
    """Epoch milliseconds."""
    title: str
    description: str
    author: str | None = None
    amount: float | None = None
    currency: str | None = None
    location: str | None = None
    metadata: Any = None


@dataclass
class Dossier:
    """Everything the client detail view shows, assembled on demand."""

    client: Client
    transactions: list[Transaction] = field(default_factory=list)
    events: list[CalendarEvent] = field(default_factory=list)
    timeline: list[ActivityItem] = field(default_factory=list)


def notes_of(client: Client) -> list[Note]:
    """Parse the JSON notes stored on a client row, in insertion order."""
    return [Note.model_validate(record) for record in client.notes or []]
