"""Unit tests for logging and OpenTelemetry setup."""

import io
import json
import logging
import os
from collections.abc import Iterator
from unittest.mock import MagicMock, Mock, patch

import pytest
from opentelemetry.sdk.trace import TracerProvider

from luna_dine.observability.config import (
    DEFAULT_METRIC_EXPORT_INTERVAL_MS,
    EXCLUDED_URLS,
    NOISY_LOGGERS,
    TraceContextFilter,
    configure_logging,
    get_service_resource,
    metric_export_interval,
    setup_auto_instrumentation,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.mark.unit
class TestServiceResource:
    @patch.dict(os.environ, {"OTEL_SERVICE_NAME": "luna-dine-gulshan", "ENVIRONMENT": "staging"}, clear=True)
    def test_resource_attributes(self) -> None:
        attributes = get_service_resource().attributes

        assert attributes["service.name"] == "luna-dine-gulshan"
        assert attributes["service.version"] == "1.0.0"
        assert attributes["deployment.environment"] == "staging"


@pytest.mark.unit
class TestMetricExportInterval:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, DEFAULT_METRIC_EXPORT_INTERVAL_MS),
            ("5000", 5000),
            ("soon", DEFAULT_METRIC_EXPORT_INTERVAL_MS),
            ("0", DEFAULT_METRIC_EXPORT_INTERVAL_MS),
        ],
    )
    def test_interval_from_environment(self, raw: str | None, expected: int) -> None:
        env = {} if raw is None else {"OTEL_METRIC_EXPORT_INTERVAL": raw}
        with patch.dict(os.environ, env, clear=True):
            assert metric_export_interval() == expected


@pytest.mark.unit
class TestAutoInstrumentation:
    @patch("luna_dine.observability.config.FastAPIInstrumentor")
    @patch("luna_dine.observability.config.SQLAlchemyInstrumentor")
    @patch("luna_dine.observability.config.HTTPXClientInstrumentor")
    def test_health_route_excluded(self, mock_httpx: Mock, mock_sqlalchemy: Mock, mock_fastapi: Mock) -> None:
        app, engine = MagicMock(), MagicMock()

        setup_auto_instrumentation(app, engine)

        mock_httpx.return_value.instrument.assert_called_once_with()
        mock_sqlalchemy.return_value.instrument.assert_called_once_with(engine=engine)
        mock_fastapi.instrument_app.assert_called_once_with(app, excluded_urls=EXCLUDED_URLS)

    @patch("luna_dine.observability.config.FastAPIInstrumentor")
    @patch("luna_dine.observability.config.SQLAlchemyInstrumentor")
    @patch("luna_dine.observability.config.HTTPXClientInstrumentor")
    def test_without_app_or_engine(self, mock_httpx: Mock, mock_sqlalchemy: Mock, mock_fastapi: Mock) -> None:
        setup_auto_instrumentation()

        mock_sqlalchemy.return_value.instrument.assert_not_called()
        mock_fastapi.instrument_app.assert_not_called()


@pytest.mark.unit
class TestLogging:
    def test_trace_ids_stamped_inside_span(self) -> None:
        tracer = TracerProvider().get_tracer(__name__)
        record = logging.LogRecord("luna_dine", logging.INFO, __file__, 1, "placed", None, None)

        with tracer.start_as_current_span("place_order") as span:
            assert TraceContextFilter().filter(record) is True
            context = span.get_span_context()

        assert record.trace_id == format(context.trace_id, "032x")
        assert record.span_id == format(context.span_id, "016x")

    def test_no_trace_ids_outside_span(self) -> None:
        record = logging.LogRecord("luna_dine", logging.INFO, __file__, 1, "placed", None, None)

        assert TraceContextFilter().filter(record) is True
        assert not hasattr(record, "trace_id")

    @pytest.mark.usefixtures("restore_root_logger")
    @patch.dict(os.environ, {"LOG_LEVEL": "debug"}, clear=True)
    def test_json_records_and_quiet_libraries(self) -> None:
        configure_logging("INFO")
        root = logging.getLogger()
        stream = io.StringIO()
        root.handlers[0].setStream(stream)

        logging.getLogger("luna_dine.services.order_service").debug("Placed order ORD1")

        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert root.level == logging.DEBUG
        assert line["message"] == "Placed order ORD1"
        assert line["level"] == "DEBUG"
        assert line["logger"] == "luna_dine.services.order_service"
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
