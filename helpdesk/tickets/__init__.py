"""Ticket domain models, lifecycle rules and errors."""

from .engine import TicketLifecycleEngine, generate_ticket_number
from .errors import (
    InvalidTransitionError,
    StorageError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from .models import UNSET, CountMode, DeclineRecord, Page, Ticket, TicketChanges, TicketDraft, UpdateOutcome
from .state import DECLINED_STATUSES, TicketStateMachine, TicketStatus, parse_status

__all__ = [
    "UNSET",
    "CountMode",
    "DECLINED_STATUSES",
    "DeclineRecord",
    "InvalidTransitionError",
    "Page",
    "StorageError",
    "Ticket",
    "TicketChanges",
    "TicketDraft",
    "TicketLifecycleEngine",
    "TicketNotFoundError",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketValidationError",
    "UpdateOutcome",
    "generate_ticket_number",
    "parse_status",
]
