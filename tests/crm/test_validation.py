"""Tests for local validation and form parsing."""

import pytest

from filali_crm.crm.errors import ValidationFailedError
from filali_crm.crm.schemas import ClientCreate, ClientUpdate
from filali_crm.crm.validation import (
    ensure_valid,
    is_valid_email,
    parse_custom_fields,
    parse_tags,
    validate_client_payload,
    validate_event_request,
    validate_url,
)


class TestClientPayload:
    """Tests for validate_client_payload."""

    def test_valid_create(self) -> None:
        """A named client with a good email passes."""
        payload = ClientCreate(full_name="Amina Filali", email="amina@example.com")

        assert validate_client_payload(payload) == []

    def test_create_requires_name(self) -> None:
        """Whitespace-only names are rejected on create."""
        payload = ClientCreate(full_name="   ")

        assert validate_client_payload(payload) == ["Full name is required"]

    def test_update_does_not_require_name(self) -> None:
        """Partial updates may omit the name."""
        assert validate_client_payload(ClientUpdate(phone="+15550100")) == []

    def test_bad_email(self) -> None:
        """Malformed emails are rejected on create and update."""
        assert validate_client_payload(ClientUpdate(email="not-an-email")) == [
            "Please enter a valid email address"
        ]

    @pytest.mark.parametrize(
        "email",
        ["amina@example..com", "amina@.example.com", "a@-x.com", "amina@example.com."],
    )
    def test_malformed_domains_rejected(self, email: str) -> None:
        """Empty, leading-hyphen and trailing-dot domain labels are rejected."""
        payload = ClientCreate(full_name="Amina", email=email)

        assert validate_client_payload(payload) == [
            "Please enter a valid email address"
        ]

    def test_email_lower_cased(self) -> None:
        """Emails are normalized to lower case on create and update."""
        assert ClientCreate(full_name="A", email=" Amina@Example.COM ").email == (
            "amina@example.com"
        )
        assert ClientUpdate(email="Amina@Example.com").email == "amina@example.com"

    def test_ensure_valid_raises_with_messages(self) -> None:
        """ensure_valid carries every message on the exception."""
        with pytest.raises(ValidationFailedError) as exc_info:
            ensure_valid(["a", "b"])

        assert exc_info.value.errors == ["a", "b"]

    def test_ensure_valid_passes_empty(self) -> None:
        """No messages means no exception."""
        ensure_valid([])


class TestParsers:
    """Tests for tag and custom-field parsing."""

    def test_email_check(self) -> None:
        """Emails need a local part, an @ and a dotted domain."""
        assert is_valid_email("a@b.co")
        assert not is_valid_email("a@b")
        assert not is_valid_email("a b@c.com")

    def test_parse_tags(self) -> None:
        """Tags are trimmed and empty entries dropped."""
        assert parse_tags("vip, lead,, coaching ") == ["vip", "lead", "coaching"]
        assert parse_tags("") == []

    def test_parse_custom_fields_normalizes_keys_and_numbers(self) -> None:
        """Keys become snake_case and numeric values become numbers."""
        parsed = parse_custom_fields(
            "Lead Source: Instagram, Budget: 5000, Close Rate: 0.35"
        )

        assert parsed == {"lead_source": "Instagram", "budget": 5000, "close_rate": 0.35}
        assert isinstance(parsed["budget"], int)

    def test_parse_custom_fields_skips_incomplete_pairs(self) -> None:
        """Pairs missing a key, colon, or value are ignored."""
        assert parse_custom_fields("novalue:, :orphan, nocolon, ok: yes") == {"ok": "yes"}


class TestEventRequest:
    """Tests for validate_event_request."""

    def test_valid(self) -> None:
        """A subject and ordered times pass."""
        assert (
            validate_event_request("Call", "2025-06-01T10:00", "2025-06-01T11:00") == []
        )

    def test_missing_fields(self) -> None:
        """Each missing field has its own message."""
        assert validate_event_request(" ", None, "") == [
            "Subject is required",
            "Start date and time is required",
            "End date and time is required",
        ]

    def test_end_before_start(self) -> None:
        """End must be strictly after start."""
        assert validate_event_request(
            "Call", "2025-06-01T11:00", "2025-06-01T11:00"
        ) == ["End time must be after start time"]

    def test_unparseable_times(self) -> None:
        """Non date-time values are rejected."""
        assert validate_event_request("Call", "tomorrow", "later") == [
            "Start and end must be valid date-times"
        ]


class TestValidateUrl:
    """Tests for validate_url."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://filaligroup.com", True),
            ("http://localhost:8000/path", True),
            ("ftp://filaligroup.com", False),
            ("filaligroup.com", False),
            ("https://", False),
        ],
    )
    def test_urls(self, url: str, expected: bool) -> None:
        """Only absolute http(s) URLs with a host are accepted."""
        assert validate_url(url) is expected
