"""Tests for the activity timeline merger."""

from datetime import UTC, datetime

from filali_crm.crm.models import (
    ActivityType,
    CalendarEvent,
    FieldChange,
    Note,
    NoteType,
    Transaction,
)
from filali_crm.crm.timeline import (
    build_timeline,
    event_to_activity,
    note_to_activity,
    to_epoch_millis,
    transaction_to_activity,
)

T1 = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
T2 = datetime(2025, 3, 2, 9, 0, tzinfo=UTC)
T3 = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


def make_note(
    created_at: datetime,
    body: str = "Called about renewal",
    note_type: NoteType = NoteType.MANUAL,
    **kwargs,
) -> Note:
    """Helper to create a note at a fixed time."""
    return Note(body=body, type=note_type, created_at=created_at, **kwargs)


def make_transaction(created_at: datetime, **kwargs) -> Transaction:
    """Helper to create a transaction at a fixed time."""
    values = {
        "session_id": "cs_test_1",
        "product_id": "prod_elite",
        "created_unix": int(created_at.timestamp()),
        "amount_total": 1500.0,
        "currency": "usd",
        "customer_email": "amina@example.com",
    }
    values.update(kwargs)
    return Transaction(**values)


def make_event(start: str, **kwargs) -> CalendarEvent:
    """Helper to create a calendar event from the collaborator's JSON shape."""
    payload = {
        "id": "evt_1",
        "subject": "Strategy session",
        "start": {"dateTime": start, "timeZone": "UTC"},
        "end": {"dateTime": start, "timeZone": "UTC"},
        "organizer": {"emailAddress": {"address": "amina@example.com"}},
    }
    payload.update(kwargs)
    return CalendarEvent.model_validate(payload)


class TestToEpochMillis:
    """Tests for to_epoch_millis."""

    def test_aware_datetime(self) -> None:
        """Aware datetimes convert exactly."""
        assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, tzinfo=UTC)) == 1000

    def test_naive_string_taken_as_utc(self) -> None:
        """Naive ISO strings are interpreted as UTC."""
        assert to_epoch_millis("1970-01-01T00:00:02") == 2000

    def test_zulu_suffix(self) -> None:
        """A trailing Z is accepted."""
        assert to_epoch_millis("1970-01-01T00:00:03Z") == 3000

    def test_unparseable_maps_to_zero(self) -> None:
        """Garbage timestamps sort last instead of raising."""
        assert to_epoch_millis("not a date") == 0


class TestMappers:
    """Tests for per-source activity mapping."""

    def test_manual_note_maps_to_note(self) -> None:
        """Manual notes become "Note Added" items."""
        note = make_note(T1, author="Admin")

        item = note_to_activity(note)

        assert item.type is ActivityType.NOTE
        assert item.title == "Note Added"
        assert item.author == "Admin"
        assert item.timestamp == to_epoch_millis(T1)
        assert item.metadata is None

    def test_activity_note_carries_changes(self) -> None:
        """Activity notes expose their change list as metadata."""
        note = make_note(
            T1,
            body="Client information updated",
            note_type=NoteType.ACTIVITY,
            changes=[FieldChange(field="Tags", old_value="lead", new_value="lead, vip")],
        )

        item = note_to_activity(note)

        assert item.type is ActivityType.ACTIVITY
        assert item.title == "System Activity"
        assert item.metadata == [
            {"field": "Tags", "old_value": "lead", "new_value": "lead, vip"}
        ]

    def test_transaction_maps_amount_and_seconds(self) -> None:
        """Transactions convert unix seconds and carry amount and currency."""
        item = transaction_to_activity(make_transaction(T2))

        assert item.type is ActivityType.TRANSACTION
        assert item.title == "Payment Received"
        assert item.timestamp == int(T2.timestamp()) * 1000
        assert item.amount == 1500.0
        assert item.currency == "usd"
        assert item.description == "Product prod_elite"

    def test_transaction_uses_description_when_present(self) -> None:
        """The product description wins over the fallback label."""
        item = transaction_to_activity(make_transaction(T2, description="Elite Mastermind"))

        assert item.description == "Elite Mastermind"

    def test_event_maps_location_and_fallback_description(self) -> None:
        """Events use subject, location, and a default description."""
        event = make_event(
            "2025-03-03T09:00:00",
            location={"displayName": "Casablanca office"},
        )

        item = event_to_activity(event)

        assert item.type is ActivityType.EVENT
        assert item.title == "Strategy session"
        assert item.description == "Calendar event"
        assert item.location == "Casablanca office"
        assert item.timestamp == to_epoch_millis(T3)

    def test_event_without_subject_or_preview(self) -> None:
        """Null subject and preview fall back to an empty title and default text."""
        event = make_event("2025-03-03T09:00:00", subject=None, bodyPreview=None)

        item = event_to_activity(event)

        assert item.title == ""
        assert item.description == "Calendar event"


class TestBuildTimeline:
    """Tests for build_timeline."""

    def test_merges_sources_newest_first(self) -> None:
        """Notes at T2 and T1 with a payment at T3 order as T3, T2, T1."""
        notes = [make_note(T2, body="second"), make_note(T1, body="first")]
        transactions = [make_transaction(T3)]

        timeline = build_timeline(notes, transactions, [])

        assert [item.type for item in timeline] == [
            ActivityType.TRANSACTION,
            ActivityType.NOTE,
            ActivityType.NOTE,
        ]
        assert [item.description for item in timeline[1:]] == ["second", "first"]

    def test_payment_between_two_notes(self) -> None:
        """Notes at T1 < T2 and a payment between them order as note, payment, note."""
        between = datetime(2025, 3, 1, 21, 0, tzinfo=UTC)
        notes = [make_note(T1, body="first"), make_note(T2, body="second")]

        timeline = build_timeline(notes, [make_transaction(between)], [])

        assert [(item.type, item.timestamp) for item in timeline] == [
            (ActivityType.NOTE, to_epoch_millis(T2)),
            (ActivityType.TRANSACTION, to_epoch_millis(between)),
            (ActivityType.NOTE, to_epoch_millis(T1)),
        ]
        assert timeline[0].description == "second"
        assert timeline[2].description == "first"

    def test_empty_inputs(self) -> None:
        """No sources means an empty timeline."""
        assert build_timeline([], [], []) == []

    def test_output_is_sorted_descending(self) -> None:
        """Every adjacent pair is in non-increasing timestamp order."""
        timeline = build_timeline(
            [make_note(T1), make_note(T3)],
            [make_transaction(T2)],
            [make_event("2025-03-02T12:00:00")],
        )

        timestamps = [item.timestamp for item in timeline]
        assert timestamps == sorted(timestamps, reverse=True)
        assert len(timeline) == 4

    def test_equal_timestamps_keep_source_order(self) -> None:
        """Ties keep notes before payments before events."""
        timeline = build_timeline(
            [make_note(T1)],
            [make_transaction(T1)],
            [make_event(T1.isoformat())],
        )

        assert [item.type for item in timeline] == [
            ActivityType.NOTE,
            ActivityType.TRANSACTION,
            ActivityType.EVENT,
        ]

    def test_same_inputs_same_output(self) -> None:
        """Building twice from the same inputs yields identical timelines."""
        notes = [make_note(T2), make_note(T1)]
        transactions = [make_transaction(T3)]

        assert build_timeline(notes, transactions, []) == build_timeline(
            notes, transactions, []
        )
