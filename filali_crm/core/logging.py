"""Structured logging configuration using structlog.

Client email addresses and phone numbers show up in log events (dispatch
failures, contact logging). They are masked before rendering.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import orjson
import structlog
from structlog.types import EventDict, Processor

from filali_crm.core.config import settings

# Context variables for request/client correlation
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
client_id_ctx: ContextVar[str | None] = ContextVar("client_id", default=None)

CONTACT_KEYS = frozenset({"email", "phone", "recipient", "organizer"})


def mask_contact(value: str) -> str:
    """Mask an email address or phone number for logging.

    Example:
        >>> mask_contact("nawfal@filaligroup.com")
        'n***@filaligroup.com'
        >>> mask_contact("+1 555 010 7788")
        '***7788'
    """
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    digits = [c for c in value if c.isdigit()]
    return "***" + "".join(digits[-4:])


def _mask_contact_details(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in CONTACT_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = mask_contact(value)
    return event_dict


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add request and client correlation ids to log events."""
    if request_id := request_id_ctx.get():
        event_dict["request_id"] = request_id
    if client_id := client_id_ctx.get():
        event_dict.setdefault("client_id", client_id)
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    # Enum and datetime values fall back to str().
    return orjson.dumps(obj, default=str).decode("utf-8")


def _use_json() -> bool:
    log_format = settings.log_format.lower() if settings.log_format else None
    if log_format is not None:
        return log_format == "json"
    return settings.environment != "development"


def configure_logging() -> None:
    """Configure structlog for the application.

    Development mode: ConsoleRenderer with colors for readability.
    Other environments, or LOG_FORMAT=json: JSONRenderer with orjson.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
        _mask_contact_details,
    ]

    if _use_json():
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to `name`."""
    return structlog.get_logger(name)
