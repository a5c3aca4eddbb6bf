from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk.db.models import DeclinedTicketTable
from helpdesk.db.utils import count_rows, ensure_datetime, storage_errors
from helpdesk.tickets.models import CountMode, DeclineRecord, Page

UNKNOWN_DECLINER = "Unknown"

_AGGREGATE_COLUMNS = {
    "facility": DeclinedTicketTable.facility,
    "declined_by": DeclinedTicketTable.declined_by,
}


class DeclineLogRepository:
    """Insert-only store of decline records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, record: DeclineRecord) -> DeclineRecord:
        row = DeclinedTicketTable(
            ticket_id=record.ticket_id,
            ticket_number=record.ticket_number,
            device_type=record.device_type,
            owner_name=record.owner_name,
            facility=record.facility,
            original_description=record.original_description,
            decline_reason=record.decline_reason,
            declined_by=record.declined_by,
            declined_at=record.declined_at,
            created_at=record.created_at,
        )
        async with storage_errors("log declined ticket"):
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return self._row_to_record(row)

    async def list_records(
        self,
        *,
        search: str | None = None,
        facility: str | None = None,
        declined_by: str | None = None,
        page: int = 1,
        limit: int = 20,
        count_mode: CountMode = CountMode.APPROXIMATE,
        paginate: bool = True,
    ) -> Page[DeclineRecord]:
        stmt = select(DeclinedTicketTable)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(DeclinedTicketTable.ticket_number).like(pattern),
                    func.lower(DeclinedTicketTable.device_type).like(pattern),
                    func.lower(DeclinedTicketTable.owner_name).like(pattern),
                    func.lower(DeclinedTicketTable.decline_reason).like(pattern),
                )
            )
        if facility:
            stmt = stmt.where(DeclinedTicketTable.facility == facility)
        if declined_by:
            stmt = stmt.where(DeclinedTicketTable.declined_by == declined_by)
        stmt = stmt.order_by(DeclinedTicketTable.declined_at.desc(), DeclinedTicketTable.id.desc())

        async with storage_errors("list declined tickets"):
            async with self._session_factory() as session:
                total = await count_rows(
                    session,
                    stmt,
                    table_name=DeclinedTicketTable.__tablename__,
                    mode=count_mode,
                    filtered=bool(search or facility or declined_by),
                )
                if paginate:
                    stmt = stmt.offset((page - 1) * limit).limit(limit)
                rows = (await session.execute(stmt)).scalars().all()

        if not paginate:
            page, limit = 1, len(rows)
        return Page(
            items=[self._row_to_record(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            count_mode=count_mode,
        )

    async def count(self, *, since: datetime | None = None) -> int:
        stmt = select(func.count()).select_from(DeclinedTicketTable)
        if since is not None:
            stmt = stmt.where(DeclinedTicketTable.declined_at >= since)
        async with storage_errors("count declined tickets"):
            async with self._session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())

    async def aggregate(self, field: str) -> dict[str, int]:
        """Return the number of records per distinct value of ``field``."""

        column = _AGGREGATE_COLUMNS.get(field)
        if column is None:
            raise ValueError(f"Cannot aggregate declined tickets by {field!r}")
        stmt = select(column, func.count()).group_by(column)
        async with storage_errors("aggregate declined tickets"):
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()

        counts: dict[str, int] = {}
        for value, count in rows:
            key = value or UNKNOWN_DECLINER
            counts[key] = counts.get(key, 0) + int(count)
        return counts

    @staticmethod
    def _row_to_record(row: DeclinedTicketTable) -> DeclineRecord:
        return DeclineRecord(
            id=row.id,
            ticket_id=row.ticket_id,
            ticket_number=row.ticket_number,
            device_type=row.device_type,
            owner_name=row.owner_name,
            facility=row.facility,
            original_description=row.original_description,
            decline_reason=row.decline_reason,
            declined_by=row.declined_by,
            declined_at=ensure_datetime(row.declined_at),
            created_at=ensure_datetime(row.created_at),
        )
