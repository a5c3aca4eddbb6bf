from fastapi import APIRouter, Depends

from helpdesk.dependencies.auth import Role, User, role_required

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/secure", summary="Authenticated health probe")
async def secure_ping(user: User = Depends(role_required(Role.VIEWER))) -> dict[str, str]:
    return {"status": "ok", "user": user.username}
