"""Clients API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from filali_crm.api.deps import get_calendar, get_client_service, get_payments
from filali_crm.core.logging import client_id_ctx
from filali_crm.crm.dossier import load_dossier
from filali_crm.crm.models import (
    MANUAL_AUTHOR,
    ActivityItem,
    CalendarEvent,
    ClientStatus,
    ContactAction,
    Note,
    Transaction,
    notes_of,
)
from filali_crm.crm.schemas import ClientCreate, ClientUpdate
from filali_crm.crm.service import ClientService, ClientStats
from filali_crm.integrations.calendar import CalendarClient
from filali_crm.integrations.payments import PaymentsClient
from filali_crm.models.client import Client

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientResponse(BaseModel):
    """Client response model."""

    id: str
    full_name: str
    email: str | None
    phone: str | None
    company: str | None
    status: ClientStatus
    tags: list[str]
    custom: dict[str, Any]
    notes: list[Note]
    created_at: datetime
    updated_at: datetime | None


class ClientListResponse(BaseModel):
    """Paginated client list response."""

    items: list[ClientResponse]
    total: int
    limit: int
    offset: int


class NoteCreateRequest(BaseModel):
    """Payload for adding a manual note."""

    body: str = Field(max_length=10_000)
    author: str = Field(default=MANUAL_AUTHOR, max_length=255)


class ContactLogRequest(BaseModel):
    """Payload recording a call, text, FaceTime, or email button press."""

    action: ContactAction
    phone: str | None = None
    email: str | None = None
    message: str | None = None


class DossierResponse(BaseModel):
    """Client detail view: record, matched payments/events, and timeline."""

    client: ClientResponse
    transactions: list[Transaction]
    events: list[CalendarEvent]
    timeline: list[ActivityItem]


def _to_client_response(client: Client) -> ClientResponse:
    """Map SQLAlchemy client model to response model."""
    return ClientResponse(
        id=client.id,
        full_name=client.full_name,
        email=client.email,
        phone=client.phone,
        company=client.company,
        status=client.status,
        tags=list(client.tags or []),
        custom=dict(client.custom or {}),
        notes=notes_of(client),
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    service: ClientService = Depends(get_client_service),
) -> ClientResponse:
    """Create a new client."""
    client = await service.create_client(payload)
    return _to_client_response(client)


@router.get("", response_model=ClientListResponse)
async def list_clients(
    status_filter: str | None = Query(
        default=None,
        alias="status",
        pattern="^(all|lead|active|inactive|lost)$",
    ),
    search: str | None = Query(default=None, min_length=1),
    tags: list[str] | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: ClientService = Depends(get_client_service),
) -> ClientListResponse:
    """List clients with optional status, search, tag filters and pagination."""
    clients, total = await service.list_clients(
        status=status_filter,
        search=search,
        tags=tags,
        limit=limit,
        offset=offset,
    )
    return ClientListResponse(
        items=[_to_client_response(client) for client in clients],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=ClientStats)
async def client_stats(
    service: ClientService = Depends(get_client_service),
) -> ClientStats:
    """Client counts per status and recent additions."""
    return await service.client_stats()


@router.get("/search", response_model=list[ClientResponse])
async def search_clients(
    q: str = Query(min_length=1, max_length=255),
    limit: int = Query(default=10, ge=1, le=50),
    service: ClientService = Depends(get_client_service),
) -> list[ClientResponse]:
    """Quick name/email/company search for client pickers."""
    clients = await service.search_clients(q, limit=limit)
    return [_to_client_response(client) for client in clients]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    service: ClientService = Depends(get_client_service),
) -> ClientResponse:
    """Get client by ID."""
    return _to_client_response(await service.get_client(client_id))


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    payload: ClientUpdate,
    service: ClientService = Depends(get_client_service),
) -> ClientResponse:
    """Partially update a client, recording the changes as an activity note."""
    client_id_ctx.set(client_id)
    client = await service.apply_update(client_id, payload)
    return _to_client_response(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    service: ClientService = Depends(get_client_service),
) -> Response:
    """Delete a client and all of its notes."""
    await service.delete_client(client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{client_id}/notes",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    client_id: str,
    payload: NoteCreateRequest,
    service: ClientService = Depends(get_client_service),
) -> ClientResponse:
    """Append a manual note."""
    client = await service.add_note(client_id, payload.body, author=payload.author)
    return _to_client_response(client)


@router.post(
    "/{client_id}/contact-log",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
)
async def log_contact(
    client_id: str,
    payload: ContactLogRequest,
    service: ClientService = Depends(get_client_service),
) -> ClientResponse:
    """Record a contact action as an activity note."""
    client = await service.log_contact(
        client_id,
        payload.action,
        phone=payload.phone,
        email=payload.email,
        message=payload.message,
    )
    return _to_client_response(client)


@router.get("/{client_id}/dossier", response_model=DossierResponse)
async def get_dossier(
    client_id: str,
    service: ClientService = Depends(get_client_service),
    payments: PaymentsClient = Depends(get_payments),
    calendar: CalendarClient = Depends(get_calendar),
) -> DossierResponse:
    """Client detail view with the merged activity timeline."""
    client_id_ctx.set(client_id)
    client = await service.get_client(client_id)
    dossier = await load_dossier(client, payments, calendar)
    return DossierResponse(
        client=_to_client_response(dossier.client),
        transactions=dossier.transactions,
        events=dossier.events,
        timeline=dossier.timeline,
    )
