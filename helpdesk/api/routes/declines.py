from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from helpdesk.declines.service import DeclineService
from helpdesk.dependencies.paging import Paging
from helpdesk.dependencies.tickets import ViewerUser, get_decline_service
from helpdesk.tickets.export import declined_tickets_csv
from helpdesk.tickets.models import DeclineRecord

router = APIRouter(prefix="/api/declined-tickets", tags=["declined-tickets"])


class DeclineRecordResponse(BaseModel):
    id: int
    ticket_id: int
    ticket_number: str
    device_type: str
    owner_name: str
    facility: str
    original_description: str | None
    decline_reason: str
    declined_by: str | None
    declined_at: datetime
    created_at: datetime


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class DeclineListResponse(BaseModel):
    declined_tickets: list[DeclineRecordResponse]
    pagination: PaginationResponse


class DeclineActionRequest(BaseModel):
    action: str


class DeclineStatsResponse(BaseModel):
    total_declined: int
    declined_today: int
    by_facility: dict[str, int]
    by_declined_by: dict[str, int]


DeclineServiceDep = Annotated[DeclineService, Depends(get_decline_service)]


def _to_response(record: DeclineRecord) -> DeclineRecordResponse:
    return DeclineRecordResponse(
        id=record.id,
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


@router.get("", response_model=DeclineListResponse)
async def list_declined_tickets(
    response: Response,
    service: DeclineServiceDep,
    _: ViewerUser,
    paging: Paging,
    search: str | None = Query(default=None),
    facility: str | None = Query(default=None),
    declined_by: str | None = Query(default=None),
    export: bool = Query(default=False),
) -> DeclineListResponse:
    result = await service.list_records(
        search=search,
        facility=facility,
        declined_by=declined_by,
        page=paging.page,
        limit=paging.limit,
        export=export,
    )
    filtered = bool(search or facility or declined_by)
    if export or filtered:
        response.headers["Cache-Control"] = "public, max-age=10, s-maxage=20, stale-while-revalidate=60"
    else:
        response.headers["Cache-Control"] = "public, max-age=30, s-maxage=60, stale-while-revalidate=120"
    return DeclineListResponse(
        declined_tickets=[_to_response(record) for record in result.items],
        pagination=PaginationResponse(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.post("", response_model=DeclineStatsResponse)
async def declined_ticket_action(
    payload: DeclineActionRequest,
    service: DeclineServiceDep,
    _: ViewerUser,
) -> DeclineStatsResponse:
    if payload.action != "stats":
        raise HTTPException(status_code=400, detail="Invalid action")
    stats = await service.stats()
    return DeclineStatsResponse(
        total_declined=stats.total_declined,
        declined_today=stats.declined_today,
        by_facility=stats.by_facility,
        by_declined_by=stats.by_declined_by,
    )


@router.get("/export.csv")
async def export_declined_tickets_csv(
    service: DeclineServiceDep,
    _: ViewerUser,
    search: str | None = Query(default=None),
    facility: str | None = Query(default=None),
    declined_by: str | None = Query(default=None),
) -> Response:
    result = await service.list_records(search=search, facility=facility, declined_by=declined_by, export=True)
    filename = f"declined-tickets-{datetime.now(timezone.utc):%Y-%m-%d}.csv"
    return Response(
        content=declined_tickets_csv(result.items),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
