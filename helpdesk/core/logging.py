"""Logging and tracing setup.

Nothing in this module keeps state between calls. The application lifespan
owns the tracer provider and keeps it on ``app.state``.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from helpdesk.core.config import Settings

# Every module logs through ``logging.getLogger(__name__)`` below this name.
PACKAGE_LOGGER = "helpdesk"


def logging_config(settings: Settings) -> dict[str, Any]:
    level = settings.log_level.upper()
    if level not in logging.getLevelNamesMapping():
        level = "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": settings.log_format}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
        "loggers": {
            PACKAGE_LOGGER: {"level": level},
            # SQL echo only when the service itself runs at DEBUG.
            "sqlalchemy.engine": {"level": "INFO" if level == "DEBUG" else "WARNING"},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Apply the logging configuration and return the package logger."""

    dictConfig(logging_config(settings))
    return logging.getLogger(PACKAGE_LOGGER)


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key=value`` exporter headers, skipping malformed pairs."""

    headers: dict[str, str] = {}
    for pair in (raw or "").split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def build_tracer_provider(settings: Settings) -> TracerProvider | None:
    """Return a provider exporting spans over OTLP, or ``None`` when tracing is off."""

    if not settings.otel_enabled:
        return None

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    exporter_kwargs: dict[str, Any] = {}
    if settings.otel_exporter_otlp_endpoint:
        exporter_kwargs["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = parse_otlp_headers(settings.otel_exporter_otlp_headers)
    if headers:
        exporter_kwargs["headers"] = headers

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_kwargs)))
    return provider
