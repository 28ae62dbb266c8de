"""Client SQLAlchemy model."""

import uuid
from typing import Any

from sqlalchemy import JSON, Enum, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from filali_crm.crm.models import ClientStatus
from filali_crm.models.base import Base, TimestampMixin

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")

EMAIL_CONSTRAINT = "uq_clients_email"
PHONE_CONSTRAINT = "uq_clients_phone"


class Client(Base, TimestampMixin):
    """Represents a person or organization tracked by the business.

    Notes are embedded as an append-only JSON list. Never mutate the list in
    place: assign a new list so the ORM sees the change.
    """

    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("email", name=EMAIL_CONSTRAINT),
        UniqueConstraint("phone", name=PHONE_CONSTRAINT),
        Index("ix_clients_status", "status"),
        Index("ix_clients_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    company: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[ClientStatus] = mapped_column(
        Enum(
            ClientStatus,
            name="client_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=ClientStatus.LEAD,
        nullable=False,
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    custom: Mapped[dict[str, Any]] = mapped_column(
        JSONType, default=dict, nullable=False
    )
    notes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, default=list, nullable=False
    )
