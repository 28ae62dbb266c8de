"""Sentry error tracking integration."""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from filali_crm.core.config import settings

# Request bodies carry client names, emails, phone numbers, and email copy.
SCRUBBED_REQUEST_KEYS = ("data", "cookies")


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Drop request bodies from an event before it leaves the process."""
    request = event.get("request")
    if isinstance(request, dict):
        for key in SCRUBBED_REQUEST_KEYS:
            request.pop(key, None)
    return event


def init_sentry() -> None:
    """Initialize Sentry if SENTRY_DSN is configured.

    Only 5xx responses are reported, 10% of traces are sampled, and request
    bodies are stripped by scrub_event.
    """
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )
