from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.dependencies.auth import AppSettings, BearerCredentials, authenticate
from helpdesk.dependencies.paging import Paging
from helpdesk.dependencies.tickets import StaffUser, ViewerUser, get_ticket_service
from helpdesk.tickets.errors import InvalidTransitionError, TicketNotFoundError, TicketValidationError
from helpdesk.tickets.export import completed_repairs_csv
from helpdesk.tickets.models import Ticket, TicketChanges, TicketDraft
from helpdesk.tickets.service import TicketService
from helpdesk.tickets.state import TicketStatus, parse_status

router = APIRouter(prefix="/api/tickets", tags=["tickets"])

_NO_STORE = "no-store"
_COMPLETED_LIST_CACHE = "public, max-age=5, s-maxage=15, stale-while-revalidate=30"


class TicketCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Presence is checked by the lifecycle engine so that missing fields are a 400.
    device: str | None = None
    repair_reason: str | None = Field(default=None, alias="repairReason")
    owner_name: str | None = Field(default=None, alias="ownerName")
    facility: str | None = None
    ticket_number: str | None = Field(default=None, alias="ticketNumber", max_length=32)
    serial_number: str | None = Field(default=None, alias="serialNumber", max_length=255)

    def to_draft(self) -> TicketDraft:
        return TicketDraft(
            device=self.device or "",
            repair_reason=self.repair_reason or "",
            owner_name=self.owner_name or "",
            facility=self.facility or "",
            ticket_number=self.ticket_number,
            serial_number=self.serial_number,
        )


class TicketUpdateRequest(BaseModel):
    status: str | None = None
    assigned_to: str | None = Field(default=None, max_length=255)
    repair_reason: str | None = None
    facility: str | None = Field(default=None, max_length=255)
    remarks: str | None = None
    declined_by: str | None = Field(default=None, max_length=255)

    def to_changes(self) -> TicketChanges:
        supplied: dict[str, Any] = {name: getattr(self, name) for name in self.model_fields_set}
        return TicketChanges.from_mapping(supplied)


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    device_type: str
    repair_reason: str
    owner_name: str
    facility: str
    serial_number: str | None
    status: TicketStatus
    status_label: str
    assigned_to: str | None
    remarks: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None


class TicketEnvelope(BaseModel):
    success: bool = True
    ticket: TicketResponse
    message: str | None = None


class TicketListResponse(BaseModel):
    success: bool = True
    tickets: list[TicketResponse]
    total: int
    page: int
    limit: int
    status: TicketStatus | None
    count_mode: str


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse(
        id=ticket.id,
        ticket_number=ticket.ticket_number,
        device_type=ticket.device_type,
        repair_reason=ticket.repair_reason,
        owner_name=ticket.owner_name,
        facility=ticket.facility,
        serial_number=ticket.serial_number,
        status=ticket.status,
        status_label=ticket.status.label,
        assigned_to=ticket.assigned_to,
        remarks=ticket.remarks,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        completed_at=ticket.completed_at,
    )


@router.post("", response_model=TicketEnvelope, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketEnvelope:
    try:
        ticket = await service.create_ticket(payload.to_draft())
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TicketEnvelope(ticket=_to_response(ticket), message="Ticket created successfully")


@router.get("", response_model=TicketListResponse | TicketEnvelope)
async def list_tickets(
    response: Response,
    service: TicketServiceDep,
    credentials: BearerCredentials,
    settings: AppSettings,
    paging: Paging,
    ticket_number: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    export: bool = Query(default=False),
) -> TicketListResponse | TicketEnvelope:
    response.headers["Cache-Control"] = _NO_STORE
    if ticket_number:
        # Status lookup by ticket number is open to the people who filed the ticket.
        try:
            ticket = await service.get_by_number(ticket_number)
        except TicketNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Ticket not found") from exc
        return TicketEnvelope(ticket=_to_response(ticket))

    # Listing needs a token; it is only checked once the public lookup is ruled out.
    if authenticate(credentials, settings) is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        result = await service.list_tickets(
            status=status_filter, page=paging.page, limit=paging.limit, export=export
        )
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    parsed_status = parse_status(status_filter) if status_filter else None
    if parsed_status is TicketStatus.COMPLETED and not export:
        response.headers["Cache-Control"] = _COMPLETED_LIST_CACHE
    return TicketListResponse(
        tickets=[_to_response(ticket) for ticket in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        status=parsed_status,
        count_mode=result.count_mode.value,
    )


@router.get("/summary")
async def ticket_summary(service: TicketServiceDep, _: ViewerUser) -> dict[str, int]:
    return await service.status_summary()


@router.get("/export.csv")
async def export_tickets_csv(
    service: TicketServiceDep,
    _: ViewerUser,
    status_filter: str = Query(default=TicketStatus.COMPLETED.value, alias="status"),
) -> Response:
    try:
        result = await service.list_tickets(status=status_filter, export=True)
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    filename = f"{status_filter.strip()}_repairs_{datetime.now(timezone.utc):%Y-%m-%d}.csv"
    return Response(
        content=completed_repairs_csv(result.items),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{ticket_id}", response_model=TicketEnvelope)
async def get_ticket(ticket_id: int, service: TicketServiceDep, _: ViewerUser) -> TicketEnvelope:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketEnvelope(ticket=_to_response(ticket))


@router.patch("/{ticket_id}", response_model=TicketEnvelope)
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    _: StaffUser,
) -> TicketEnvelope:
    changes = payload.to_changes()
    if not changes.supplied():
        raise HTTPException(status_code=400, detail="No fields provided for update")
    try:
        ticket = await service.update_ticket(ticket_id, changes)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (TicketValidationError, InvalidTransitionError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TicketEnvelope(ticket=_to_response(ticket))


@router.delete("/{ticket_id}")
async def delete_ticket(ticket_id: int, service: TicketServiceDep, _: StaffUser) -> dict[str, bool]:
    try:
        await service.delete_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True}
