"""OpenTelemetry and logging setup for the LunaDine API process.

Environment variables:
    OTEL_SERVICE_NAME: Resource service name (default ``luna-dine``)
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP collector base URL
    OTEL_METRIC_EXPORT_INTERVAL: Metric export interval in milliseconds
    ENVIRONMENT: Deployment environment; ``test`` disables exporters
    LOG_LEVEL: Root log level
"""

import logging
import os
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4318"
DEFAULT_METRIC_EXPORT_INTERVAL_MS = 30000

# Menu pages poll /health; its spans carry no order or menu context
EXCLUDED_URLS = "health"

# Libraries that log every statement or request at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "uvicorn.access")


def get_service_resource() -> Resource:
    """Build the resource identifying this process in traces and metrics."""
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", "luna-dine"),
            "service.version": SERVICE_VERSION,
            "deployment.environment": os.getenv("ENVIRONMENT", "development"),
        }
    )


def _otlp_endpoint() -> str:
    return os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT).rstrip("/")


def metric_export_interval() -> int:
    """Read the metric export interval, falling back on a missing or bad value."""
    raw = os.getenv("OTEL_METRIC_EXPORT_INTERVAL")
    if not raw:
        return DEFAULT_METRIC_EXPORT_INTERVAL_MS
    try:
        interval = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid OTEL_METRIC_EXPORT_INTERVAL '{raw}'")
        return DEFAULT_METRIC_EXPORT_INTERVAL_MS
    return interval if interval > 0 else DEFAULT_METRIC_EXPORT_INTERVAL_MS


def setup_tracing(resource: Resource) -> None:
    endpoint = _otlp_endpoint()
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
    trace.set_tracer_provider(provider)

    logger.info(f"Exporting traces to {endpoint}")


def setup_metrics(resource: Resource) -> None:
    endpoint = _otlp_endpoint()
    interval = metric_export_interval()
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"), export_interval_millis=interval
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger.info(f"Exporting metrics to {endpoint} every {interval} ms")


def setup_auto_instrumentation(app: Any = None, engine: Any = None) -> None:
    """Instrument the API, the database engine and outgoing httpx calls.

    Args:
        app: Optional FastAPI application; ``/health`` is left untraced
        engine: Optional SQLAlchemy engine
    """
    HTTPXClientInstrumentor().instrument()
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine)
    if app is not None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)


def setup_observability(app: Any = None, engine: Any = None, enable_exporters: bool = True) -> None:
    """Initialize tracing, metrics and auto-instrumentation.

    With exporters disabled (always the case when ``ENVIRONMENT=test``) SDK
    providers are still installed, so spans and instruments stay valid and
    trace ids still reach the logs.

    Args:
        app: Optional FastAPI application to instrument
        engine: Optional SQLAlchemy engine to instrument
        enable_exporters: Whether to export over OTLP
    """
    if os.getenv("ENVIRONMENT", "development") == "test":
        enable_exporters = False

    resource = get_service_resource()
    if enable_exporters:
        setup_tracing(resource)
        setup_metrics(resource)
    else:
        trace.set_tracer_provider(TracerProvider(resource=resource))
        metrics.set_meter_provider(MeterProvider(resource=resource))

    setup_auto_instrumentation(app, engine)
    logger.info(f"Observability configured (exporters {'on' if enable_exporters else 'off'})")


class TraceContextFilter(logging.Filter):
    """Stamp log records with the ids of the active span, when there is one."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            record.trace_id = format(context.trace_id, "032x")
            record.span_id = format(context.span_id, "016x")
        return True


def configure_logging(log_level: str = "INFO") -> None:
    """Configure JSON logging on the root logger.

    Records are emitted as one JSON object per line with ``level`` and
    ``logger`` keys, plus ``trace_id``/``span_id`` inside a traced request.
    ``LOG_LEVEL`` overrides ``log_level``.
    """
    level_str = os.getenv("LOG_LEVEL", log_level).upper()
    level = getattr(logging, level_str, logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        timestamp=True,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(TraceContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.info(f"JSON logging configured at {level_str} level")
