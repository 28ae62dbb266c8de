"""Client store operations.

ClientService wraps an AsyncSession and is the only code that writes client
rows. Every write that changes tracked fields leaves an activity note behind,
and unique-constraint violations come back as ClientConflictError naming the
field that collided.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from filali_crm.core.logging import get_logger
from filali_crm.crm.diff import compute_diff
from filali_crm.crm.errors import (
    ClientConflictError,
    ClientNotFoundError,
    ConflictField,
    ValidationFailedError,
)
from filali_crm.crm.models import MANUAL_AUTHOR, ClientStatus, ContactAction, Note
from filali_crm.crm.notes import contact_note, creation_note, manual_note, update_note
from filali_crm.crm.schemas import ClientCreate, ClientUpdate
from filali_crm.crm.validation import ensure_valid, validate_client_payload
from filali_crm.models.client import EMAIL_CONSTRAINT, PHONE_CONSTRAINT, Client

logger = get_logger(__name__)

RECENT_WINDOW = timedelta(days=7)
UNIQUE_VIOLATION_MARKERS = ("duplicate key", "unique constraint")


class ClientStats(BaseModel):
    """Client counts per status plus recent sign-ups."""

    total: int = 0
    leads: int = 0
    active: int = 0
    inactive: int = 0
    lost: int = 0
    recently_added: int = 0


STATUS_STAT_FIELDS: dict[ClientStatus, str] = {
    ClientStatus.LEAD: "leads",
    ClientStatus.ACTIVE: "active",
    ClientStatus.INACTIVE: "inactive",
    ClientStatus.LOST: "lost",
}


def classify_conflict(exc: IntegrityError) -> ConflictField | None:
    """Work out which unique field an IntegrityError was raised for.

    The driver's constraint name is used when available (asyncpg exposes it on
    the wrapped exception). Otherwise the error text is matched: a unique
    violation mentions "duplicate key" (Postgres) or "UNIQUE constraint"
    (SQLite), followed by the column or constraint name.

    Args:
        exc: IntegrityError raised by a flush.

    Returns:
        The conflicting field, UNKNOWN for an unrecognized unique violation,
        or None if the error is not a unique violation at all.
    """
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        constraint = getattr(candidate, "constraint_name", None)
        if constraint == EMAIL_CONSTRAINT:
            return ConflictField.EMAIL
        if constraint == PHONE_CONSTRAINT:
            return ConflictField.PHONE

    message = str(orig if orig is not None else exc).lower()
    if not any(marker in message for marker in UNIQUE_VIOLATION_MARKERS):
        return None
    if "email" in message:
        return ConflictField.EMAIL
    if "phone" in message:
        return ConflictField.PHONE
    return ConflictField.UNKNOWN


class ClientService:
    """CRUD, notes, and statistics over the clients table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _flush(self) -> None:
        """Flush pending writes, mapping unique violations to conflicts."""
        try:
            await self._session.flush()
        except IntegrityError as exc:
            field = classify_conflict(exc)
            if field is None:
                raise
            logger.info("client_conflict", field=field.value)
            raise ClientConflictError(field) from exc

    def _tags_overlap(self, tags: list[str]) -> Any:
        """SQL condition: client has at least one of the given tags."""
        bind = self._session.bind
        if bind is not None and bind.dialect.name == "postgresql":
            return cast(Client.tags, JSONB).op("?|")(postgresql.array(tags))
        return or_(
            *(
                cast(Client.tags, String).contains(json.dumps(tag), autoescape=True)
                for tag in tags
            )
        )

    async def list_clients(
        self,
        status: str | None = None,
        search: str | None = None,
        tags: list[str] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> tuple[list[Client], int]:
        """List clients newest first with optional filters.

        Args:
            status: Status value; None or "all" disables the filter.
            search: Case-insensitive match on name, email, or company.
            tags: Match clients carrying any of these tags.
            limit: Page size; None returns everything from offset.
            offset: Rows to skip.

        Returns:
            Tuple of (clients on this page, total matching count).
        """
        filters = []
        if status and status != "all":
            filters.append(Client.status == ClientStatus(status))
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            filters.append(
                or_(
                    func.lower(Client.full_name).like(pattern),
                    func.lower(func.coalesce(Client.email, "")).like(pattern),
                    func.lower(func.coalesce(Client.company, "")).like(pattern),
                )
            )
        if tags:
            filters.append(self._tags_overlap(tags))

        count_stmt = select(func.count(Client.id))
        list_stmt = select(Client).order_by(Client.created_at.desc(), Client.id.desc())
        if filters:
            count_stmt = count_stmt.where(*filters)
            list_stmt = list_stmt.where(*filters)
        if limit is not None:
            list_stmt = list_stmt.limit(limit)
        if offset:
            list_stmt = list_stmt.offset(offset)

        total = int((await self._session.execute(count_stmt)).scalar() or 0)
        clients = (await self._session.execute(list_stmt)).scalars().all()
        return list(clients), total

    async def search_clients(self, query: str, limit: int = 10) -> list[Client]:
        """Quick search used by pickers."""
        clients, _ = await self.list_clients(search=query, limit=limit)
        return clients

    async def get_client(self, client_id: str) -> Client:
        """Load a client or raise ClientNotFoundError."""
        client = await self._session.get(Client, client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    async def create_client(self, data: ClientCreate) -> Client:
        """Create a client seeded with a "Client profile created" note.

        Raises:
            ValidationFailedError: If the payload is invalid.
            ClientConflictError: If email or phone is already taken.
        """
        ensure_valid(validate_client_payload(data))

        client = Client(
            full_name=data.full_name,
            email=data.email,
            phone=data.phone,
            company=data.company,
            status=data.status,
            tags=list(data.tags),
            custom=dict(data.custom),
            notes=[creation_note().to_record()],
        )
        self._session.add(client)
        await self._flush()
        logger.info("client_created", client_id=client.id, status=client.status.value)
        return client

    async def apply_update(self, client_id: str, proposed: ClientUpdate) -> Client:
        """Apply a partial update and record what changed.

        When the update changes at least one tracked field, exactly one
        activity note carrying the full change list is appended. A no-op
        update appends nothing.

        Raises:
            ClientNotFoundError: If the client does not exist.
            ValidationFailedError: If the payload is invalid.
            ClientConflictError: If the new email or phone is already taken.
        """
        ensure_valid(validate_client_payload(proposed))
        client = await self.get_client(client_id)

        changes = compute_diff(client, proposed)
        for name, value in proposed.provided_fields().items():
            setattr(client, name, value)

        if changes:
            self._append(client, update_note(changes))

        await self._flush()
        logger.info("client_updated", client_id=client.id, changes=len(changes))
        return client

    async def delete_client(self, client_id: str) -> None:
        """Delete a client together with its notes."""
        client = await self.get_client(client_id)
        await self._session.delete(client)
        await self._session.flush()
        logger.info("client_deleted", client_id=client_id)

    def _append(self, client: Client, note: Note) -> None:
        # Reassign so the JSON column is marked dirty.
        client.notes = [*(client.notes or []), note.to_record()]

    async def add_note(
        self, client_id: str, body: str, author: str = MANUAL_AUTHOR
    ) -> Client:
        """Append a user-authored note.

        Raises:
            ValidationFailedError: If the body is blank.
        """
        if not body or not body.strip():
            raise ValidationFailedError(["Note cannot be empty"])
        client = await self.get_client(client_id)
        self._append(client, manual_note(body.strip(), author=author))
        await self._flush()
        return client

    async def log_contact(
        self,
        client_id: str,
        action: ContactAction,
        phone: str | None = None,
        email: str | None = None,
        message: str | None = None,
    ) -> Client:
        """Append the activity note for a call, text, FaceTime, or email.

        Phone and email default to the client's own details.
        """
        client = await self.get_client(client_id)
        self._append(
            client,
            contact_note(
                action,
                phone=phone or client.phone,
                email=email or client.email,
                message=message,
            ),
        )
        await self._flush()
        logger.info("client_contact_logged", client_id=client.id, action=action.value)
        return client

    async def client_stats(self, now: datetime | None = None) -> ClientStats:
        """Count clients per status and those added in the last seven days."""
        now = now or datetime.now(UTC)
        rows = (
            await self._session.execute(
                select(Client.status, func.count(Client.id)).group_by(Client.status)
            )
        ).all()

        stats = ClientStats()
        for status, count in rows:
            setattr(stats, STATUS_STAT_FIELDS[status], count)
            stats.total += count

        recent_stmt = select(func.count(Client.id)).where(
            Client.created_at > now - RECENT_WINDOW
        )
        stats.recently_added = int((await self._session.execute(recent_stmt)).scalar() or 0)
        return stats
