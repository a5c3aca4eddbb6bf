from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Sequence, TypeVar

from .state import TicketStatus

DEFAULT_DECLINER = "System"


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset.UNSET


@dataclass(slots=True)
class Ticket:
    """Aggregate representing an equipment repair ticket."""

    id: int | None
    ticket_number: str
    device_type: str
    repair_reason: str
    owner_name: str
    facility: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    serial_number: str | None = None
    assigned_to: str | None = None
    remarks: str | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class DeclineRecord:
    """Immutable audit row written when a ticket is declined with a reason."""

    id: int | None
    ticket_id: int
    ticket_number: str
    device_type: str
    owner_name: str
    facility: str
    original_description: str | None
    decline_reason: str
    declined_at: datetime
    created_at: datetime
    declined_by: str | None = DEFAULT_DECLINER


@dataclass(slots=True)
class TicketDraft:
    """Input for a new ticket submission."""

    device: str
    repair_reason: str
    owner_name: str
    facility: str
    ticket_number: str | None = None
    serial_number: str | None = None


@dataclass(slots=True)
class TicketChanges:
    """Partial update payload.

    Fields left as ``UNSET`` were not supplied by the caller and keep their
    current value. ``None`` is a real value for ``assigned_to``; for
    ``remarks`` and ``status`` it is treated as "no new value".
    """

    status: str | TicketStatus | None | _Unset = UNSET
    assigned_to: str | None | _Unset = UNSET
    repair_reason: str | None | _Unset = UNSET
    facility: str | None | _Unset = UNSET
    remarks: str | None | _Unset = UNSET
    declined_by: str | None | _Unset = UNSET

    @classmethod
    def from_mapping(cls, payload: dict[str, Any]) -> "TicketChanges":
        names = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in names})

    def supplied(self) -> dict[str, Any]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not UNSET
        }


@dataclass(slots=True)
class UpdateOutcome:
    """Resolved next ticket state plus the decline record to log, if any."""

    ticket: Ticket
    decline: DeclineRecord | None = None


class CountMode(str, Enum):
    """How list totals are computed."""

    EXACT = "exact"
    APPROXIMATE = "approximate"


T = TypeVar("T")


@dataclass(slots=True)
class Page(Generic[T]):
    """One page of rows plus the total number of matching rows."""

    items: Sequence[T]
    total: int
    page: int
    limit: int
    count_mode: CountMode = CountMode.EXACT

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)
