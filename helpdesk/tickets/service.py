from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from helpdesk.declines.repository import DeclineLogRepository

from .engine import TicketLifecycleEngine, generate_ticket_number
from .errors import TicketNotFoundError
from .models import CountMode, Page, Ticket, TicketChanges, TicketDraft
from .repository import TicketRepository
from .state import TicketStatus, parse_status

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200


def clamp_paging(page: int | None, limit: int | None, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normalise paging parameters: page >= 1 and 1 <= limit <= max_limit."""

    page = page if page and page > 0 else 1
    limit = min(limit, max_limit) if limit and limit > 0 else default_limit
    return page, limit


@dataclass(slots=True)
class TicketService:
    """High level orchestration for ticket lifecycle operations."""

    repository: TicketRepository
    declines: DeclineLogRepository
    engine: TicketLifecycleEngine = field(default_factory=TicketLifecycleEngine)
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    rng: random.Random = field(default_factory=random.Random)

    async def create_ticket(self, draft: TicketDraft) -> Ticket:
        if not (draft.ticket_number or "").strip() and (draft.device or "").strip():
            today = datetime.now(timezone.utc).date()
            draft = replace(draft, ticket_number=generate_ticket_number(draft.device, today, self.rng))
        ticket = self.engine.create_ticket(draft)
        created = await self.repository.insert(ticket)
        logger.info("Created ticket %s (%s)", created.id, created.ticket_number)
        return created

    async def get_ticket(self, ticket_id: int) -> Ticket:
        ticket = await self.repository.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def get_by_number(self, ticket_number: str) -> Ticket:
        ticket = await self.repository.get_by_number(ticket_number.strip())
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_number} not found")
        return ticket

    async def list_tickets(
        self,
        *,
        status: str | TicketStatus | None = None,
        page: int | None = 1,
        limit: int | None = None,
        export: bool = False,
    ) -> Page[Ticket]:
        status_filter = parse_status(status) if status else None
        page, limit = clamp_paging(page, limit, default_limit=self.default_page_size, max_limit=self.max_page_size)
        if export:
            return await self.repository.list_tickets(
                status=status_filter, count_mode=CountMode.EXACT, paginate=False
            )
        return await self.repository.list_tickets(
            status=status_filter, page=page, limit=limit, count_mode=CountMode.APPROXIMATE
        )

    async def update_ticket(self, ticket_id: int, changes: TicketChanges) -> Ticket:
        current = await self.repository.get_ticket(ticket_id)
        if current is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        outcome = self.engine.apply_update(current, changes)

        updated = await self.repository.update(outcome.ticket)
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        logger.info("Updated ticket %s (%s)", ticket_id, ", ".join(sorted(changes.supplied())) or "no fields")

        if outcome.decline is not None:
            try:
                await self.declines.insert(outcome.decline)
            except Exception:
                # The ticket row is already committed; the decline log never fails the update.
                logger.exception("Failed to log declined ticket %s", ticket_id)
            else:
                logger.info("Logged decline of ticket %s by %s", ticket_id, outcome.decline.declined_by)
        return updated

    async def delete_ticket(self, ticket_id: int) -> None:
        deleted = await self.repository.delete(ticket_id)
        if not deleted:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        logger.info("Deleted ticket %s", ticket_id)

    async def status_summary(self) -> dict[str, int]:
        counts = await self.repository.count_by_status()
        summary = {status.value: counts.get(status.value, 0) for status in TicketStatus}
        summary["total"] = sum(counts.values())
        summary["declined_log"] = await self.declines.count()
        return summary
