import logging

from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from helpdesk.core.config import Settings
from helpdesk.core.logging import (
    PACKAGE_LOGGER,
    build_tracer_provider,
    configure_logging,
    logging_config,
    parse_otlp_headers,
)
from helpdesk.main import create_app


def test_logging_config_sets_package_level():
    config = logging_config(Settings(log_level="debug"))

    assert config["loggers"][PACKAGE_LOGGER]["level"] == "DEBUG"
    assert config["loggers"]["sqlalchemy.engine"]["level"] == "INFO"
    assert config["root"]["level"] == "WARNING"


def test_unknown_log_level_falls_back_to_info():
    config = logging_config(Settings(log_level="chatty"))

    assert config["loggers"][PACKAGE_LOGGER]["level"] == "INFO"
    assert config["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"


def test_configure_logging_returns_package_logger():
    logger = configure_logging(Settings(log_level="WARNING"))

    assert logger.name == PACKAGE_LOGGER
    assert logger.level == logging.WARNING
    assert logging.getLogger("helpdesk.tickets.service").getEffectiveLevel() == logging.WARNING


def test_parse_otlp_headers():
    assert parse_otlp_headers(None) == {}
    assert parse_otlp_headers("api-key = secret, ,broken,=x,team=ops") == {"api-key": "secret", "team": "ops"}


def test_tracing_disabled_builds_no_provider():
    assert build_tracer_provider(Settings(otel_enabled=False)) is None


def test_tracing_enabled_builds_provider():
    provider = build_tracer_provider(
        Settings(otel_enabled=True, otel_service_name="helpdesk-test", otel_exporter_otlp_endpoint="http://localhost:4318/v1/traces")
    )
    try:
        assert isinstance(provider, TracerProvider)
        assert provider.resource.attributes["service.name"] == "helpdesk-test"
    finally:
        provider.shutdown()


def test_requests_are_traced_when_app_has_a_tracer():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    app = create_app(Settings())
    app.state.tracer = provider.get_tracer(PACKAGE_LOGGER)

    response = TestClient(app).get("/ping")

    assert response.status_code == 200
    (span,) = exporter.get_finished_spans()
    assert span.name == "GET /ping"
    assert span.attributes["http.status_code"] == 200


def test_requests_pass_through_without_tracer():
    app = create_app(Settings())

    response = TestClient(app).get("/ping")

    assert response.json() == {"status": "ok"}
