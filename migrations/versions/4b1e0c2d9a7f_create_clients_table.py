"""create_clients_table

Revision ID: 4b1e0c2d9a7f
Revises:
Create Date: 2026-10-19 09:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4b1e0c2d9a7f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

client_status = postgresql.ENUM(
    "lead", "active", "inactive", "lost", name="client_status", create_type=False
)


def upgrade() -> None:
    """Create the clients table with embedded notes."""
    client_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("status", client_status, nullable=False),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "custom",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "notes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_clients_email"),
        sa.UniqueConstraint("phone", name="uq_clients_phone"),
    )
    op.create_index("ix_clients_status", "clients", ["status"])
    op.create_index("ix_clients_created_at", "clients", ["created_at"])
    # GIN index for the tags overlap filter
    op.execute("CREATE INDEX ix_clients_tags ON clients USING GIN (tags)")


def downgrade() -> None:
    """Drop the clients table and its status type."""
    op.execute("DROP INDEX IF EXISTS ix_clients_tags")
    op.drop_index("ix_clients_created_at", table_name="clients")
    op.drop_index("ix_clients_status", table_name="clients")
    op.drop_table("clients")
    client_status.drop(op.get_bind(), checkfirst=True)
