from __future__ import annotations

from enum import Enum

from .errors import InvalidTransitionError, TicketValidationError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    NOT_FUNCTIONING = "not_functioning"
    DECLINED = "declined"
    # Legacy synonym still present in stored rows; rendered as "Declined".
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[TicketStatus, str] = {
    TicketStatus.PENDING: "Pending",
    TicketStatus.IN_PROGRESS: "In Progress",
    TicketStatus.COMPLETED: "Completed",
    TicketStatus.NOT_FUNCTIONING: "Not Functioning",
    TicketStatus.DECLINED: "Declined",
    TicketStatus.CANCELLED: "Declined",
}

DECLINED_STATUSES = frozenset({TicketStatus.DECLINED, TicketStatus.CANCELLED})
TERMINAL_STATUSES = frozenset({TicketStatus.COMPLETED, *DECLINED_STATUSES})


def parse_status(value: str | TicketStatus) -> TicketStatus:
    """Convert a raw status value, rejecting anything outside the enum."""

    if isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(str(value).strip())
    except ValueError as exc:
        allowed = ", ".join(status.value for status in TicketStatus)
        raise TicketValidationError(f"Unknown status {value!r}; expected one of: {allowed}") from exc


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    The default table is permissive: any status may follow any other, matching
    how tickets have always been edited. With ``strict_terminal`` enabled,
    completed and declined tickets can no longer be moved.
    """

    def __init__(self, *, strict_terminal: bool = False) -> None:
        self._strict_terminal = strict_terminal

    def allowed_targets(self, current: TicketStatus) -> frozenset[TicketStatus]:
        if self._strict_terminal and current in TERMINAL_STATUSES:
            return frozenset({current})
        return frozenset(TicketStatus)

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        if current == target:
            return True
        return target in self.allowed_targets(current)

    def assert_transition(self, current: TicketStatus, target: TicketStatus) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(f"Invalid ticket status transition: {current.value} -> {target.value}")
