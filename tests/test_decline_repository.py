from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from helpdesk.declines.repository import DeclineLogRepository
from helpdesk.tickets.models import CountMode

from tests.factories import NOW, make_decline


async def _seed(repository: DeclineLogRepository) -> None:
    await repository.insert(make_decline(ticket_id=1, ticket_number="LA001", facility="MAIN OFFICE"))
    await repository.insert(
        make_decline(
            ticket_id=2,
            ticket_number="PR002",
            device_type="Printer",
            owner_name="Bob Stone",
            facility="ANNEX",
            reason="Out of warranty",
            declined_by=None,
            declined_at=NOW + timedelta(hours=1),
        )
    )
    await repository.insert(
        make_decline(
            ticket_id=3,
            ticket_number="MO003",
            device_type="Monitor",
            facility="ANNEX",
            reason="cannot reproduce",
            declined_by="System",
            declined_at=NOW + timedelta(hours=2),
        )
    )


@pytest.mark.asyncio
async def test_insert_assigns_identifier(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)

    stored = await repository.insert(make_decline())

    assert stored.id is not None
    assert stored.declined_at == NOW
    assert stored.decline_reason == "duplicate ticket"


@pytest.mark.asyncio
async def test_list_records_is_newest_first(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    page = await repository.list_records(count_mode=CountMode.EXACT)

    assert [record.ticket_number for record in page.items] == ["MO003", "PR002", "LA001"]
    assert page.total == 3


@pytest.mark.asyncio
async def test_search_is_case_insensitive_across_columns(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    by_reason = await repository.list_records(search="warranty")
    by_owner = await repository.list_records(search="bob")
    by_number = await repository.list_records(search="mo0")

    assert [record.ticket_number for record in by_reason.items] == ["PR002"]
    assert [record.ticket_number for record in by_owner.items] == ["PR002"]
    assert [record.ticket_number for record in by_number.items] == ["MO003"]
    assert by_reason.total == 1


@pytest.mark.asyncio
async def test_facility_and_decliner_filters_are_exact(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    annex = await repository.list_records(facility="ANNEX")
    system = await repository.list_records(facility="ANNEX", declined_by="System")

    assert annex.total == 2
    assert [record.ticket_number for record in system.items] == ["MO003"]
    assert (await repository.list_records(facility="annex")).total == 0


@pytest.mark.asyncio
async def test_pagination(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    second = await repository.list_records(page=2, limit=2)
    everything = await repository.list_records(limit=2, paginate=False)

    assert [record.ticket_number for record in second.items] == ["LA001"]
    assert second.total == 3
    assert second.total_pages == 2
    assert len(everything.items) == 3
    assert (everything.page, everything.limit, everything.total_pages) == (1, 3, 1)


@pytest.mark.asyncio
async def test_unpaginated_empty_log_has_no_pages(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)

    result = await repository.list_records(paginate=False)

    assert result.items == []
    assert result.total_pages == 0


@pytest.mark.asyncio
async def test_count_since(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    assert await repository.count() == 3
    assert await repository.count(since=NOW + timedelta(minutes=30)) == 2


@pytest.mark.asyncio
async def test_aggregate_groups_missing_decliner_as_unknown(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)
    await _seed(repository)

    assert await repository.aggregate("facility") == {"MAIN OFFICE": 1, "ANNEX": 2}
    assert await repository.aggregate("declined_by") == {"A. Reyes": 1, "Unknown": 1, "System": 1}


@pytest.mark.asyncio
async def test_aggregate_rejects_unknown_field(session_factory: async_sessionmaker):
    repository = DeclineLogRepository(session_factory)

    with pytest.raises(ValueError):
        await repository.aggregate("owner_name")
