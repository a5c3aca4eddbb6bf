from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from helpdesk.db.models import TicketTable
from helpdesk.db.utils import count_rows, ensure_datetime, storage_errors

from .models import CountMode, Page, Ticket
from .state import TicketStatus


class TicketRepository:
    """Data access layer for ticket records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with storage_errors("create schema"):
            async with self._engine.begin() as connection:
                await connection.run_sync(SQLModel.metadata.create_all)

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with storage_errors("load ticket"):
            async with self._session_factory() as session:
                row = await session.get(TicketTable, ticket_id)
                return None if row is None else self._row_to_ticket(row)

    async def get_by_number(self, ticket_number: str) -> Ticket | None:
        stmt = (
            select(TicketTable)
            .where(TicketTable.ticket_number == ticket_number)
            .order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
            .limit(1)
        )
        async with storage_errors("load ticket"):
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalars().first()
                return None if row is None else self._row_to_ticket(row)

    async def insert(self, ticket: Ticket) -> Ticket:
        row = TicketTable(
            ticket_number=ticket.ticket_number,
            device_type=ticket.device_type,
            description=ticket.repair_reason,
            owner_name=ticket.owner_name,
            facility=ticket.facility,
            serial_number=ticket.serial_number,
            status=ticket.status.value,
            assigned_to=ticket.assigned_to,
            remarks=ticket.remarks,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            completed_at=ticket.completed_at,
        )
        async with storage_errors("insert ticket"):
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return self._row_to_ticket(row)

    async def update(self, ticket: Ticket) -> Ticket | None:
        async with storage_errors("update ticket"):
            async with self._session_factory() as session:
                row = await session.get(TicketTable, ticket.id)
                if row is None:
                    return None
                row.status = ticket.status.value
                row.assigned_to = ticket.assigned_to
                row.description = ticket.repair_reason
                row.facility = ticket.facility
                row.remarks = ticket.remarks
                row.completed_at = ticket.completed_at
                row.updated_at = ticket.updated_at
                await session.commit()
                await session.refresh(row)
                return self._row_to_ticket(row)

    async def delete(self, ticket_id: int) -> bool:
        async with storage_errors("delete ticket"):
            async with self._session_factory() as session:
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True

    async def list_tickets(
        self,
        *,
        status: TicketStatus | None = None,
        page: int = 1,
        limit: int = 10,
        count_mode: CountMode = CountMode.APPROXIMATE,
        paginate: bool = True,
    ) -> Page[Ticket]:
        stmt = select(TicketTable)
        if status is not None:
            stmt = stmt.where(TicketTable.status == status.value)
        stmt = stmt.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())

        async with storage_errors("list tickets"):
            async with self._session_factory() as session:
                total = await count_rows(
                    session,
                    stmt,
                    table_name=TicketTable.__tablename__,
                    mode=count_mode,
                    filtered=status is not None,
                )
                if paginate:
                    stmt = stmt.offset((page - 1) * limit).limit(limit)
                rows = (await session.execute(stmt)).scalars().all()

        if not paginate:
            # The whole result is a single page.
            page, limit = 1, len(rows)
        return Page(
            items=[self._row_to_ticket(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            count_mode=count_mode,
        )

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(TicketTable.status, func.count()).group_by(TicketTable.status)
        async with storage_errors("count tickets"):
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        return {str(status): int(count) for status, count in rows}

    @staticmethod
    def _row_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            ticket_number=row.ticket_number,
            device_type=row.device_type,
            repair_reason=row.description or "",
            owner_name=row.owner_name,
            facility=row.facility,
            serial_number=row.serial_number,
            status=TicketStatus(row.status),
            assigned_to=row.assigned_to,
            remarks=row.remarks,
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
            completed_at=ensure_datetime(row.completed_at),
        )
