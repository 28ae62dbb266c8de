"""Input payloads for creating and updating clients."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from filali_crm.crm.models import ClientStatus, CustomValue
from filali_crm.crm.validation import parse_custom_fields, parse_tags


def _blank_to_none(value: Any) -> Any:
    """Trim strings and treat empty ones as "not provided"."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _lower_email(value: str | None) -> str | None:
    # Payments and calendar events are joined on the lower-cased address.
    return value.lower() if value else value


def _tags_from_form(value: Any) -> Any:
    """Accept the comma-separated string the client form submits."""
    return parse_tags(value) if isinstance(value, str) else value


def _custom_from_form(value: Any) -> Any:
    """Accept "Key: value, Other: 42" as submitted by the client form."""
    return parse_custom_fields(value) if isinstance(value, str) else value


class ClientCreate(BaseModel):
    """Payload for creating a client."""

    requires_name: ClassVar[bool] = True

    full_name: str = Field(default="", max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    company: str | None = Field(default=None, max_length=255)
    status: ClientStatus = ClientStatus.LEAD
    tags: list[str] = Field(default_factory=list)
    custom: dict[str, CustomValue] = Field(default_factory=dict)

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", "phone", "company", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str | None) -> str | None:
        return _lower_email(value)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_from_form(cls, value: Any) -> Any:
        return _tags_from_form(value)

    @field_validator("custom", mode="before")
    @classmethod
    def custom_from_form(cls, value: Any) -> Any:
        return _custom_from_form(value)


class ClientUpdate(BaseModel):
    """Partial update for a client. None means "leave unchanged"."""

    requires_name: ClassVar[bool] = False

    full_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    company: str | None = Field(default=None, max_length=255)
    status: ClientStatus | None = None
    tags: list[str] | None = None
    custom: dict[str, CustomValue] | None = None

    @field_validator("full_name", "email", "phone", "company", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str | None) -> str | None:
        return _lower_email(value)

    @field_validator("tags", mode="before")
    @classmethod
    def tags_from_form(cls, value: Any) -> Any:
        return _tags_from_form(value)

    @field_validator("custom", mode="before")
    @classmethod
    def custom_from_form(cls, value: Any) -> Any:
        return _custom_from_form(value)

    def provided_fields(self) -> dict[str, Any]:
        """Fields this update actually sets, ready to assign on the model."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if value is not None
        }
