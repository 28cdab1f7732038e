"""Logging and tracing setup for the help center API."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from apps.api.core.config import Settings

# Service modules log under this namespace via ``logging.getLogger(__name__)``.
SERVICE_LOGGER_NAMESPACE = "apps.api"

_TRACER_INITIALISED = False


def parse_otlp_headers(header_string: str | None) -> dict[str, str]:
    """Turn ``key=value,key2=value2`` into a header mapping, skipping malformed pairs."""

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, separator, value = item.partition("=")
        if not separator or not key.strip():
            continue
        headers[key.strip()] = value.strip()
    return headers


def build_logging_config(settings: Settings) -> dict[str, object]:
    level = logging.getLevelName(getattr(logging, settings.log_level.upper(), logging.INFO))
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": settings.log_format},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            }
        },
        "loggers": {
            SERVICE_LOGGER_NAMESPACE: {"level": level},
        },
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the root handler and return the application logger."""

    config = build_logging_config(settings)
    dictConfig(config)

    logger = logging.getLogger(settings.app_name)
    logger.setLevel(config["root"]["level"])  # type: ignore[index]
    return logger


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Initialise the OpenTelemetry tracer if enabled in settings."""

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    provider = TracerProvider(
        resource=Resource(
            attributes={
                "service.name": settings.otel_service_name,
                "deployment.environment": settings.environment,
            }
        )
    )

    exporter_kwargs: dict[str, object] = {}
    if settings.otel_exporter_otlp_endpoint:
        exporter_kwargs["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = parse_otlp_headers(settings.otel_exporter_otlp_headers)
    if headers:
        exporter_kwargs["headers"] = headers

    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_kwargs)))

    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is None:
        return

    global _TRACER_INITIALISED
    provider.shutdown()
    _TRACER_INITIALISED = False
