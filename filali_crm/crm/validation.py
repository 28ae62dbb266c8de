"""Local validation and form-field parsing.

Everything here runs before any network call. Validators return a list of
human-readable messages; `ensure_valid` turns a non-empty list into a
ValidationFailedError.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from filali_crm.crm.errors import ValidationFailedError
from filali_crm.crm.models import CustomValue

if TYPE_CHECKING:
    from filali_crm.crm.schemas import ClientCreate, ClientUpdate

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def ensure_valid(errors: list[str]) -> None:
    """Raise ValidationFailedError when any validation message was produced."""
    if errors:
        raise ValidationFailedError(errors)


def is_valid_email(value: str) -> bool:
    """Syntax check of an address. No DNS lookup is made."""
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_url(value: str) -> bool:
    """Check that a value is an absolute http(s) URL with a host."""
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_client_payload(payload: ClientCreate | ClientUpdate) -> list[str]:
    """Validate a client create/update payload.

    Args:
        payload: Create payload (name required) or partial update.

    Returns:
        List of error messages, empty when valid.
    """
    errors: list[str] = []
    if payload.requires_name and not payload.full_name:
        errors.append("Full name is required")
    if payload.email and not is_valid_email(payload.email):
        errors.append("Please enter a valid email address")
    return errors


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated tag string, dropping empty entries.

    Example:
        >>> parse_tags("vip, lead,, coaching ")
        ['vip', 'lead', 'coaching']
    """
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def _coerce_custom_value(value: str) -> CustomValue:
    if NUMBER_PATTERN.match(value):
        number = float(value)
        return int(number) if number.is_integer() and "." not in value else number
    return value


def parse_custom_fields(raw: str) -> dict[str, CustomValue]:
    """Parse "Key: value, Other Key: 42" into a typed custom-field map.

    Keys are lower-cased with whitespace collapsed to underscores; values that
    look numeric become numbers. Pairs without a key or value are skipped.

    Example:
        >>> parse_custom_fields("Lead Source: Instagram, Budget: 5000")
        {'lead_source': 'Instagram', 'budget': 5000}
    """
    custom: dict[str, CustomValue] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition(":")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            continue
        custom[re.sub(r"\s+", "_", key.lower())] = _coerce_custom_value(value)
    return custom


def _parse_datetime(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def validate_event_request(
    subject: str | None,
    start: str | None,
    end: str | None,
) -> list[str]:
    """Validate a new calendar event before it is dispatched.

    Args:
        subject: Event subject.
        start: ISO-8601 start date-time.
        end: ISO-8601 end date-time.

    Returns:
        List of error messages, empty when valid.
    """
    errors: list[str] = []
    if not subject or not subject.strip():
        errors.append("Subject is required")
    if not start:
        errors.append("Start date and time is required")
    if not end:
        errors.append("End date and time is required")

    if start and end:
        start_at, end_at = _parse_datetime(start), _parse_datetime(end)
        if start_at is None or end_at is None:
            errors.append("Start and end must be valid date-times")
        else:
            # Comparing naive with aware raises; treat naive as the same zone.
            if (start_at.tzinfo is None) != (end_at.tzinfo is None):
                start_at = start_at.replace(tzinfo=None)
                end_at = end_at.replace(tzinfo=None)
            if start_at >= end_at:
                errors.append("End time must be after start time")

    return errors
