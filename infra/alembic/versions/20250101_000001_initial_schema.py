"""Initial helpdesk schema: tickets and the declined tickets log."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20250101_000001"
down_revision = None
branch_labels = None
depends_on = None

TICKET_STATUSES = ("pending", "in_progress", "completed", "not_functioning", "declined", "cancelled")


def upgrade() -> None:
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("ticket_number", sa.String(length=32), nullable=False),
        sa.Column("device_type", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=False),
        sa.Column("facility", sa.String(length=255), nullable=False),
        sa.Column("serial_number", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN (" + ", ".join(f"'{status}'" for status in TICKET_STATUSES) + ")",
            name="tickets_status_check",
        ),
    )
    op.create_index("ix_tickets_ticket_number", "tickets", ["ticket_number"])
    op.create_index("ix_tickets_status_created_at", "tickets", ["status", "created_at"])

    op.create_table(
        "declined_tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("ticket_id", sa.Integer(), nullable=False),
        sa.Column("ticket_number", sa.String(length=32), nullable=False),
        sa.Column("device_type", sa.String(length=255), nullable=False),
        sa.Column("owner_name", sa.String(length=255), nullable=False),
        sa.Column("facility", sa.String(length=255), nullable=False),
        sa.Column("original_description", sa.Text(), nullable=True),
        sa.Column("decline_reason", sa.Text(), nullable=False),
        sa.Column("declined_by", sa.String(length=255), nullable=True),
        sa.Column("declined_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_declined_tickets_ticket_id", "declined_tickets", ["ticket_id"])
    op.create_index("ix_declined_tickets_facility", "declined_tickets", ["facility"])
    op.create_index("ix_declined_tickets_declined_by", "declined_tickets", ["declined_by"])
    op.create_index("ix_declined_tickets_declined_at", "declined_tickets", ["declined_at"])


def downgrade() -> None:
    op.drop_table("declined_tickets")
    op.drop_table("tickets")
