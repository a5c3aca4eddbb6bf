from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from helpdesk.declines.service import DeclineService
from helpdesk.dependencies.auth import Role, User, role_required
from helpdesk.tickets.service import TicketService

require_staff = role_required(Role.STAFF)
require_viewer = role_required(Role.VIEWER)

StaffUser = Annotated[User, Depends(require_staff)]
ViewerUser = Annotated[User, Depends(require_viewer)]


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_decline_service(request: Request) -> DeclineService:
    service = getattr(request.app.state, "decline_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Decline log service is not configured")
    return service
