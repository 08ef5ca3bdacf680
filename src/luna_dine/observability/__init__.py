"""OpenTelemetry instrumentation and observability utilities."""

from luna_dine.observability.config import configure_logging, setup_observability
from luna_dine.observability.decorators import annotate_span, traced

__all__ = ["setup_observability", "configure_logging", "traced", "annotate_span"]
