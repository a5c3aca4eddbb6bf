from __future__ import annotations

import random
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable

from .errors import InvalidTransitionError, TicketValidationError
from .models import DEFAULT_DECLINER, UNSET, DeclineRecord, Ticket, TicketChanges, TicketDraft, UpdateOutcome
from .state import DECLINED_STATUSES, TicketStateMachine, TicketStatus, parse_status

_REQUIRED_DRAFT_FIELDS = ("device", "repair_reason", "owner_name", "facility", "ticket_number")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def generate_ticket_number(device: str, today: date, rng: random.Random | None = None) -> str:
    """Build a ticket number such as ``LA20250101007``.

    Two-letter device prefix, the submission date and a three digit random
    suffix. Numbers are not guaranteed to be unique.
    """

    prefix = "".join(ch for ch in device.strip() if ch.isalnum())[:2].upper().ljust(2, "X")
    suffix = (rng or random).randrange(1000)
    return f"{prefix}{today:%Y%m%d}{suffix:03d}"


class TicketLifecycleEngine:
    """Pure ticket lifecycle rules.

    The engine never touches storage: it validates requests and computes the
    next ticket state together with the decline record that should be logged.
    Persisting both is the caller's job.
    """

    def __init__(
        self,
        *,
        state_machine: TicketStateMachine | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._state_machine = state_machine or TicketStateMachine()
        self._clock = clock

    def create_ticket(self, draft: TicketDraft) -> Ticket:
        missing = [name for name in _REQUIRED_DRAFT_FIELDS if _is_blank(getattr(draft, name))]
        if missing:
            raise TicketValidationError(f"Missing required fields: {', '.join(missing)}")

        now = self._clock()
        serial = draft.serial_number.strip() if isinstance(draft.serial_number, str) else None
        return Ticket(
            id=None,
            ticket_number=draft.ticket_number.strip(),
            device_type=draft.device.strip(),
            repair_reason=draft.repair_reason.strip(),
            owner_name=draft.owner_name.strip(),
            facility=draft.facility.strip(),
            serial_number=serial or None,
            status=TicketStatus.PENDING,
            assigned_to=None,
            remarks=None,
            created_at=now,
            updated_at=now,
            completed_at=None,
        )

    def apply_update(self, current: Ticket, changes: TicketChanges) -> UpdateOutcome:
        if changes.status is UNSET or changes.status is None:
            next_status = current.status
        else:
            next_status = parse_status(changes.status)

        if changes.assigned_to is UNSET:
            next_assigned = current.assigned_to
        elif _is_blank(changes.assigned_to):
            next_assigned = None
        else:
            next_assigned = changes.assigned_to.strip()

        next_reason = changes.repair_reason if isinstance(changes.repair_reason, str) else current.repair_reason
        next_facility = changes.facility if isinstance(changes.facility, str) else current.facility
        # A null remarks value cannot be told apart from "not provided" by older clients.
        next_remarks = changes.remarks if changes.remarks is not UNSET and changes.remarks is not None else current.remarks

        self._state_machine.assert_transition(current.status, next_status)
        if next_status is TicketStatus.COMPLETED and _is_blank(next_assigned):
            raise InvalidTransitionError("Assign a technician before marking the ticket as completed.")

        is_completing_now = current.status is not TicketStatus.COMPLETED and next_status is TicketStatus.COMPLETED
        is_declining_now = current.status not in DECLINED_STATUSES and next_status in DECLINED_STATUSES

        now = self._clock()
        decline: DeclineRecord | None = None
        if is_declining_now and not _is_blank(next_remarks):
            decline = self._decline_record(current, reason=next_remarks, declined_by=changes.declined_by, now=now)

        ticket = replace(
            current,
            status=next_status,
            assigned_to=next_assigned,
            repair_reason=next_reason,
            facility=next_facility,
            remarks=next_remarks,
            completed_at=now if is_completing_now else current.completed_at,
            updated_at=now,
        )
        return UpdateOutcome(ticket=ticket, decline=decline)

    @staticmethod
    def _decline_record(current: Ticket, *, reason: str, declined_by: object, now: datetime) -> DeclineRecord:
        if current.id is None:
            raise TicketValidationError("Cannot decline a ticket that has not been stored")
        decliner = declined_by.strip() if isinstance(declined_by, str) and declined_by.strip() else DEFAULT_DECLINER
        return DeclineRecord(
            id=None,
            ticket_id=current.id,
            ticket_number=current.ticket_number,
            device_type=current.device_type,
            owner_name=current.owner_name,
            facility=current.facility,
            original_description=current.repair_reason,
            decline_reason=reason,
            declined_by=decliner,
            declined_at=now,
            created_at=now,
        )
