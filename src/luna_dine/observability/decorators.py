"""Tracing helpers for LunaDine service calls.

Spans are named after the operation and carry ``luna_dine.*`` attributes
describing the branch, order or menu they touched, so a trace can be found
by branch id or order uid.
"""

import asyncio
import enum
import functools
import inspect
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from opentelemetry import trace
from pydantic import BaseModel

F = TypeVar("F", bound=Callable[..., Any])

ATTRIBUTE_PREFIX = "luna_dine."

# Values OpenTelemetry accepts as span attributes without conversion
_PRIMITIVES = (str, bool, int, float)


def _attribute_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return _attribute_value(value.value)
    if isinstance(value, _PRIMITIVES):
        return value
    return str(value)


def annotate_span(**attributes: Any) -> None:
    """Set ``luna_dine.*`` attributes on the current span, skipping None values."""
    span = trace.get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(f"{ATTRIBUTE_PREFIX}{key}", _attribute_value(value))


def _call_attributes(signature: inspect.Signature, names: tuple[str, ...], args: Any, kwargs: Any) -> dict:
    """Pick the named arguments of a call, looking inside pydantic models.

    A name matches either a parameter of the function or a field of a pydantic
    model passed to it, so ``branch_id`` is found on ``place_order(request)``.
    """
    bound = signature.bind_partial(*args, **kwargs)
    bound.apply_defaults()
    found: dict[str, Any] = {}
    for name in names:
        if name in bound.arguments:
            found[name] = bound.arguments[name]
            continue
        for value in bound.arguments.values():
            if isinstance(value, BaseModel) and name in type(value).model_fields:
                found[name] = getattr(value, name)
                break
    return {key: value for key, value in found.items() if value is not None}


def traced(
    span_name: str | None = None,
    record_args: Iterable[str] = (),
    service_name: str = "luna-dine",
) -> Callable[[F], F]:
    """Decorator to run a function inside an OpenTelemetry span.

    Any exception is recorded on the span before being re-raised. Async and
    sync functions are both supported.

    Args:
        span_name: Name for the span (defaults to the function name)
        record_args: Argument or request-model field names to record as
            ``luna_dine.<name>`` span attributes
        service_name: Instrumentation scope name of the tracer

    Example:
        @traced("place_order", record_args=("branch_id", "order_type"))
        async def place_order(self, request: PlaceOrderRequest) -> PlacedOrder:
            ...
    """
    names = tuple(record_args)

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)
        signature = inspect.signature(func)

        def _start(span: Any, args: Any, kwargs: Any) -> None:
            span.set_attribute("code.function", func.__qualname__)
            for key, value in _call_attributes(signature, names, args, kwargs).items():
                span.set_attribute(f"{ATTRIBUTE_PREFIX}{key}", _attribute_value(value))

        def _fail(span: Any, e: Exception) -> None:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
                _start(span, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
                _start(span, args, kwargs)
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _fail(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
