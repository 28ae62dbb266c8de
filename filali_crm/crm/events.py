"""Calendar event creation."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from filali_crm.core.logging import get_logger
from filali_crm.core.redis import submission_lock
from filali_crm.crm.validation import ensure_valid, validate_event_request

if TYPE_CHECKING:
    import redis.asyncio as redis

    from filali_crm.integrations.dispatcher import (
        CreatedEvent,
        DispatcherClient,
        EventRequest,
    )

logger = get_logger(__name__)


async def create_calendar_event(
    dispatcher: DispatcherClient,
    redis_pool: redis.Redis,
    request: EventRequest,
) -> CreatedEvent:
    """Validate and dispatch a new calendar event.

    Raises:
        ValidationFailedError: If subject/start/end are missing or end <= start.
        SubmissionInProgressError: If the same event is already being created.
        DispatchError: If the dispatcher rejects the event.
    """
    ensure_valid(validate_event_request(request.subject, request.start, request.end))

    key = hashlib.sha256(request.model_dump_json().encode("utf-8")).hexdigest()
    async with submission_lock(redis_pool, "create_event", key):
        created = await dispatcher.create_event(request)

    logger.info("calendar_event_created", event_id=created.event_id)
    return created
