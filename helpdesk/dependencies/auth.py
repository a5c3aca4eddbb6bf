from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from helpdesk.core.config import Settings, get_settings


class Role(str, Enum):
    """Supported roles."""

    ADMIN = "admin"
    STAFF = "staff"
    VIEWER = "viewer"


# Roles implied by holding a given role.
_IMPLIED_ROLES: dict[Role, tuple[Role, ...]] = {
    Role.ADMIN: (Role.ADMIN, Role.STAFF, Role.VIEWER),
    Role.STAFF: (Role.STAFF, Role.VIEWER),
    Role.VIEWER: (Role.VIEWER,),
}


class User:
    """Simple representation of an authenticated user."""

    def __init__(self, username: str, roles: tuple[Role, ...]):
        self.username = username
        self.roles = roles

    def has_role(self, role: Role) -> bool:
        return role in self.roles


bearer_scheme = HTTPBearer(auto_error=False)


def parse_token_entry(entry: str) -> tuple[str, tuple[Role, ...]]:
    """Parse a ``"username:role,role"`` token entry into a user name and roles."""

    username, _, raw_roles = entry.partition(":")
    roles: list[Role] = []
    for raw in raw_roles.split(","):
        try:
            role = Role(raw.strip().lower())
        except ValueError:
            continue
        for implied in _IMPLIED_ROLES[role]:
            if implied not in roles:
                roles.append(implied)
    return username.strip(), tuple(roles or (Role.VIEWER,))


def resolve_token(token: str, token_map: Mapping[str, str]) -> User | None:
    entry = token_map.get(token)
    if entry is None:
        return None
    username, roles = parse_token_entry(entry)
    return User(username=username or "unknown", roles=roles)


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


def authenticate(credentials: HTTPAuthorizationCredentials | None, settings: Settings) -> User | None:
    """Resolve the bearer token against the configured token map.

    Requests without credentials are anonymous and resolve to ``None``; an
    unknown token is rejected outright.
    """

    if credentials is None:
        return None

    user = resolve_token(credentials.credentials, settings.api_tokens)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user


async def get_current_user(credentials: BearerCredentials, settings: AppSettings) -> User | None:
    return authenticate(credentials, settings)


def role_required(role: Role) -> Callable[[User | None], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User | None, Depends(get_current_user)]) -> User:
        if user is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        if not user.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency
