from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timezone

from helpdesk.tickets.models import CountMode, DeclineRecord, Page
from helpdesk.tickets.service import clamp_paging

from .repository import DeclineLogRepository

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(slots=True)
class DeclineStats:
    """Summary figures for the declined tickets report."""

    total_declined: int
    declined_today: int
    by_facility: dict[str, int]
    by_declined_by: dict[str, int]


@dataclass(slots=True)
class DeclineService:
    """Read side of the decline log: listing, export and statistics."""

    repository: DeclineLogRepository
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE

    async def list_records(
        self,
        *,
        search: str | None = None,
        facility: str | None = None,
        declined_by: str | None = None,
        page: int | None = 1,
        limit: int | None = None,
        export: bool = False,
    ) -> Page[DeclineRecord]:
        page, limit = clamp_paging(page, limit, default_limit=self.default_page_size, max_limit=self.max_page_size)
        filters = {
            "search": (search or "").strip() or None,
            "facility": (facility or "").strip() or None,
            "declined_by": (declined_by or "").strip() or None,
        }
        if export:
            return await self.repository.list_records(**filters, count_mode=CountMode.EXACT, paginate=False)
        return await self.repository.list_records(
            **filters, page=page, limit=limit, count_mode=CountMode.APPROXIMATE
        )

    async def stats(self, *, now: datetime | None = None) -> DeclineStats:
        now = now or datetime.now(timezone.utc)
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo or timezone.utc)
        return DeclineStats(
            total_declined=await self.repository.count(),
            declined_today=await self.repository.count(since=start_of_day),
            by_facility=await self.repository.aggregate("facility"),
            by_declined_by=await self.repository.aggregate("declined_by"),
        )
