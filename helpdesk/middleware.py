"""HTTP middleware for the helpdesk API."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Wrap each request in a span when the app has a tracer configured."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        tracer = getattr(request.app.state, "tracer", None)
        if tracer is None:
            return await call_next(request)

        with tracer.start_as_current_span(f"{request.method} {request.url.path}") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            response = await call_next(request)
            span.set_attribute("http.status_code", response.status_code)
            return response
