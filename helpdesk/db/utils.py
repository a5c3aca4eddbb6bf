from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from helpdesk.tickets.errors import StorageError
from helpdesk.tickets.models import CountMode

_ESTIMATE_SQL = text("SELECT reltuples::bigint FROM pg_class WHERE relname = :table_name")


@asynccontextmanager
async def storage_errors(action: str) -> AsyncIterator[None]:
    """Re-raise database failures as ``StorageError``."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to {action}: {exc}") from exc


async def count_rows(
    session: AsyncSession,
    stmt: Select,
    *,
    table_name: str,
    mode: CountMode,
    filtered: bool,
) -> int:
    """Count rows matched by ``stmt``.

    Approximate counts come from the PostgreSQL planner statistics and only
    apply to unfiltered queries; everything else is counted exactly.
    """

    if mode is CountMode.APPROXIMATE and not filtered and session.get_bind().dialect.name == "postgresql":
        estimate = (await session.execute(_ESTIMATE_SQL, {"table_name": table_name})).scalar()
        if estimate is not None and estimate >= 0:
            return int(estimate)

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return int((await session.execute(count_stmt)).scalar_one())


def ensure_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
