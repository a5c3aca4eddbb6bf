from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from helpdesk.api.routes import declines, ping, tickets
from helpdesk.core.config import Settings, get_settings
from helpdesk.core.logging import PACKAGE_LOGGER, build_tracer_provider, configure_logging
from helpdesk.declines.repository import DeclineLogRepository
from helpdesk.declines.service import DeclineService
from helpdesk.middleware import RequestTracingMiddleware
from helpdesk.tickets.engine import TicketLifecycleEngine
from helpdesk.tickets.errors import StorageError
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.tickets.state import TicketStateMachine

logger = logging.getLogger(__name__)


def to_async_dsn(dsn: str) -> str:
    """Ensure the SQLAlchemy DSN uses an async driver."""

    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    if dsn.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + dsn[len("sqlite:///") :]
    return dsn


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    engine: AsyncEngine | None = None,
) -> tuple[TicketService, DeclineService]:
    """Wire repositories, the lifecycle engine and services together."""

    ticket_repository = TicketRepository(session_factory, engine=engine)
    decline_repository = DeclineLogRepository(session_factory)
    lifecycle = TicketLifecycleEngine(
        state_machine=TicketStateMachine(strict_terminal=settings.strict_terminal_states),
    )
    ticket_service = TicketService(
        repository=ticket_repository,
        declines=decline_repository,
        engine=lifecycle,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
    decline_service = DeclineService(
        repository=decline_repository,
        default_page_size=settings.decline_default_page_size,
        max_page_size=settings.decline_max_page_size,
    )
    return ticket_service, decline_service


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings: Settings = app.state.settings
    app.state.logger = configure_logging(settings)
    tracer_provider = build_tracer_provider(settings)
    app.state.tracer_provider = tracer_provider
    app.state.tracer = tracer_provider.get_tracer(PACKAGE_LOGGER) if tracer_provider else None

    db_engine = create_async_engine(to_async_dsn(settings.database_url), future=True)
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    ticket_service, decline_service = build_services(settings, session_factory, engine=db_engine)
    if settings.create_schema_on_startup:
        await ticket_service.repository.ensure_schema()

    app.state.db_engine = db_engine
    app.state.ticket_service = ticket_service
    app.state.decline_service = decline_service
    logger.info("Helpdesk API started (%s)", settings.environment)
    try:
        yield
    finally:
        app.state.ticket_service = None
        app.state.decline_service = None
        await db_engine.dispose()
        app.state.tracer = None
        if tracer_provider is not None:
            tracer_provider.shutdown()


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_middleware(RequestTracingMiddleware)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(declines.router)
    return app


app = create_app()
