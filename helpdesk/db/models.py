"""SQLModel table definitions for the helpdesk data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class TicketTable(SQLModel, table=True):
    """Repair tickets submitted by staff members."""

    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_status_created_at", "status", "created_at"),
    )

    id: int | None = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    ticket_number: str = Field(sa_column=Column(String(32), nullable=False, index=True))
    device_type: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    owner_name: str = Field(sa_column=Column(String(255), nullable=False))
    facility: str = Field(sa_column=Column(String(255), nullable=False))
    serial_number: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    status: str = Field(sa_column=Column(String(32), nullable=False))
    assigned_to: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    remarks: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))


class DeclinedTicketTable(SQLModel, table=True):
    """Insert-only log of declined tickets and the reason given."""

    __tablename__ = "declined_tickets"

    id: int | None = Field(default=None, sa_column=Column(Integer, primary_key=True, autoincrement=True))
    # No foreign key: records outlive the ticket they describe.
    ticket_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    ticket_number: str = Field(sa_column=Column(String(32), nullable=False))
    device_type: str = Field(sa_column=Column(String(255), nullable=False))
    owner_name: str = Field(sa_column=Column(String(255), nullable=False))
    facility: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    original_description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    decline_reason: str = Field(sa_column=Column(Text, nullable=False))
    declined_by: str | None = Field(default=None, sa_column=Column(String(255), nullable=True, index=True))
    declined_at: datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
