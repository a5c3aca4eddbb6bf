"""CSV renderings of ticket lists for download."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Iterable, Sequence

from .models import DeclineRecord, Ticket

COMPLETED_REPAIRS_HEADERS = (
    "Ticket #",
    "Device",
    "Issue",
    "Owner",
    "Serial Number",
    "Facility",
    "Repair By",
    "Action taken",
    "Date Accepted",
    "Completed At",
    "Created At",
)

DECLINED_TICKETS_HEADERS = (
    "Ticket Number",
    "Device Type",
    "Owner Name",
    "Facility",
    "Original Description",
    "Decline Reason",
    "Declined By",
    "Declined At",
    "Created At",
)

NOT_ACCEPTED = "Not accepted yet"


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def _render(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def completed_repairs_csv(tickets: Iterable[Ticket]) -> str:
    rows = (
        (
            ticket.ticket_number,
            ticket.device_type,
            ticket.repair_reason,
            ticket.owner_name,
            ticket.serial_number or "",
            ticket.facility,
            ticket.assigned_to or "",
            ticket.remarks or "",
            _format_timestamp(ticket.updated_at) if ticket.assigned_to else NOT_ACCEPTED,
            _format_timestamp(ticket.completed_at or ticket.updated_at),
            _format_timestamp(ticket.created_at),
        )
        for ticket in tickets
    )
    return _render(COMPLETED_REPAIRS_HEADERS, rows)


def declined_tickets_csv(records: Iterable[DeclineRecord]) -> str:
    rows = (
        (
            record.ticket_number,
            record.device_type,
            record.owner_name,
            record.facility,
            record.original_description or "",
            record.decline_reason,
            record.declined_by or "Unknown",
            _format_timestamp(record.declined_at),
            _format_timestamp(record.created_at),
        )
        for record in records
    )
    return _render(DECLINED_TICKETS_HEADERS, rows)
