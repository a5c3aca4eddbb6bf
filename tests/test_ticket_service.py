from __future__ import annotations

import random
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from helpdesk.tickets.engine import TicketLifecycleEngine
from helpdesk.tickets.errors import (
    InvalidTransitionError,
    StorageError,
    TicketNotFoundError,
    TicketValidationError,
)
from helpdesk.tickets.models import CountMode, Page, TicketChanges, TicketDraft
from helpdesk.tickets.service import TicketService, clamp_paging
from helpdesk.tickets.state import TicketStatus

from tests.factories import NOW, make_ticket


class DummyRepository:
    def __init__(self, ticket=None):
        self.get_ticket = AsyncMock(return_value=ticket)
        self.get_by_number = AsyncMock(return_value=ticket)
        self.insert = AsyncMock(side_effect=lambda t: replace(t, id=1))
        self.update = AsyncMock(side_effect=lambda t: t)
        self.delete = AsyncMock(return_value=True)
        self.list_tickets = AsyncMock(
            return_value=Page(items=[], total=0, page=1, limit=10, count_mode=CountMode.APPROXIMATE)
        )
        self.count_by_status = AsyncMock(return_value={})


class DummyDeclineRepository:
    def __init__(self):
        self.insert = AsyncMock(side_effect=lambda record: record)
        self.count = AsyncMock(return_value=0)


def _service(repository, declines=None, clock=None) -> TicketService:
    engine = TicketLifecycleEngine(clock=clock) if clock else TicketLifecycleEngine()
    return TicketService(
        repository=repository,
        declines=declines or DummyDeclineRepository(),
        engine=engine,
        rng=random.Random(7),
    )


def test_clamp_paging():
    assert clamp_paging(None, None, default_limit=10, max_limit=200) == (1, 10)
    assert clamp_paging(0, -5, default_limit=10, max_limit=200) == (1, 10)
    assert clamp_paging(3, 500, default_limit=10, max_limit=200) == (3, 200)
    assert clamp_paging(2, 25, default_limit=10, max_limit=200) == (2, 25)


@pytest.mark.asyncio
async def test_create_ticket_persists_pending_ticket(clock):
    repository = DummyRepository()
    service = _service(repository, clock=clock)

    ticket = await service.create_ticket(
        TicketDraft(
            device="Laptop",
            repair_reason="won't boot",
            owner_name="Jane Doe",
            facility="MAIN OFFICE",
            ticket_number="LA20250101001",
        )
    )

    repository.insert.assert_awaited_once()
    assert ticket.id == 1
    assert ticket.status is TicketStatus.PENDING
    assert ticket.created_at == NOW


@pytest.mark.asyncio
async def test_create_ticket_generates_number_when_missing():
    repository = DummyRepository()
    service = _service(repository)

    ticket = await service.create_ticket(
        TicketDraft(device="printer", repair_reason="jam", owner_name="Bob", facility="ANNEX")
    )

    assert ticket.ticket_number.startswith("PR")
    assert len(ticket.ticket_number) == 13


@pytest.mark.asyncio
async def test_create_ticket_with_missing_fields_is_not_persisted():
    repository = DummyRepository()
    service = _service(repository)

    with pytest.raises(TicketValidationError):
        await service.create_ticket(TicketDraft(device="Laptop", repair_reason="", owner_name="Bob", facility=""))

    repository.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_ticket_raises_when_missing():
    service = _service(DummyRepository(ticket=None))

    with pytest.raises(TicketNotFoundError):
        await service.get_ticket(5)
    with pytest.raises(TicketNotFoundError):
        await service.get_by_number("LA000")


@pytest.mark.asyncio
async def test_get_by_number_strips_input():
    repository = DummyRepository(ticket=make_ticket())
    service = _service(repository)

    await service.get_by_number("  LA20250101001 ")

    repository.get_by_number.assert_awaited_once_with("LA20250101001")


@pytest.mark.asyncio
async def test_list_tickets_uses_approximate_counts_for_pages():
    repository = DummyRepository()
    service = _service(repository)

    await service.list_tickets(status="completed", page=2, limit=500)

    repository.list_tickets.assert_awaited_once_with(
        status=TicketStatus.COMPLETED, page=2, limit=200, count_mode=CountMode.APPROXIMATE
    )


@pytest.mark.asyncio
async def test_list_tickets_export_is_exact_and_unpaginated():
    repository = DummyRepository()
    service = _service(repository)

    await service.list_tickets(status=None, export=True)

    repository.list_tickets.assert_awaited_once_with(status=None, count_mode=CountMode.EXACT, paginate=False)


@pytest.mark.asyncio
async def test_list_tickets_rejects_unknown_status():
    service = _service(DummyRepository())

    with pytest.raises(TicketValidationError):
        await service.list_tickets(status="archived")


@pytest.mark.asyncio
async def test_update_ticket_raises_when_missing():
    repository = DummyRepository(ticket=None)
    service = _service(repository)

    with pytest.raises(TicketNotFoundError):
        await service.update_ticket(3, TicketChanges(status="in_progress"))

    repository.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_ticket_rejects_unassigned_completion_without_writing():
    repository = DummyRepository(ticket=make_ticket())
    service = _service(repository)

    with pytest.raises(InvalidTransitionError):
        await service.update_ticket(1, TicketChanges(status="completed"))

    repository.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_decline_with_reason_is_logged(clock):
    repository = DummyRepository(ticket=make_ticket())
    declines = DummyDeclineRepository()
    service = _service(repository, declines, clock=clock)

    ticket = await service.update_ticket(1, TicketChanges(status="declined", remarks="duplicate"))

    assert ticket.status is TicketStatus.DECLINED
    declines.insert.assert_awaited_once()
    record = declines.insert.await_args.args[0]
    assert record.ticket_id == 1
    assert record.decline_reason == "duplicate"
    assert record.declined_by == "System"


@pytest.mark.asyncio
async def test_decline_log_failure_does_not_undo_status_change(caplog):
    repository = DummyRepository(ticket=make_ticket())
    declines = DummyDeclineRepository()
    declines.insert = AsyncMock(side_effect=StorageError("declined_tickets unavailable"))
    service = _service(repository, declines)

    with caplog.at_level("ERROR", logger="helpdesk.tickets.service"):
        ticket = await service.update_ticket(1, TicketChanges(status="declined", remarks="duplicate"))

    assert ticket.status is TicketStatus.DECLINED
    repository.update.assert_awaited_once()
    assert "Failed to log declined ticket 1" in caplog.text


@pytest.mark.asyncio
async def test_decline_log_connection_error_does_not_fail_update(caplog):
    repository = DummyRepository(ticket=make_ticket())
    declines = DummyDeclineRepository()
    declines.insert = AsyncMock(side_effect=ConnectionRefusedError("declined_tickets host down"))
    service = _service(repository, declines)

    with caplog.at_level("ERROR", logger="helpdesk.tickets.service"):
        ticket = await service.update_ticket(1, TicketChanges(status="declined", remarks="duplicate"))

    assert ticket.status is TicketStatus.DECLINED
    repository.update.assert_awaited_once()
    assert "ConnectionRefusedError" in caplog.text


@pytest.mark.asyncio
async def test_ticket_storage_failure_propagates():
    repository = DummyRepository(ticket=make_ticket())
    repository.update = AsyncMock(side_effect=StorageError("tickets unavailable"))
    declines = DummyDeclineRepository()
    service = _service(repository, declines)

    with pytest.raises(StorageError):
        await service.update_ticket(1, TicketChanges(status="declined", remarks="duplicate"))

    declines.insert.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_ticket_raises_when_missing():
    repository = DummyRepository()
    repository.delete = AsyncMock(return_value=False)
    service = _service(repository)

    with pytest.raises(TicketNotFoundError):
        await service.delete_ticket(9)


@pytest.mark.asyncio
async def test_status_summary_fills_missing_statuses():
    repository = DummyRepository()
    repository.count_by_status = AsyncMock(return_value={"pending": 3, "completed": 2})
    declines = DummyDeclineRepository()
    declines.count = AsyncMock(return_value=4)
    service = _service(repository, declines)

    summary = await service.status_summary()

    assert summary["pending"] == 3
    assert summary["completed"] == 2
    assert summary["declined"] == 0
    assert summary["cancelled"] == 0
    assert summary["total"] == 5
    assert summary["declined_log"] == 4
