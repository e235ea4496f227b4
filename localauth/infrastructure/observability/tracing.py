"""Tracing helpers for the auth services."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, overload

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode, Tracer

P = ParamSpec("P")
R = TypeVar("R")


def get_tracer(name: str) -> Tracer:
    """Return the tracer for a module (pass ``__name__``)."""
    return trace.get_tracer(name)


def add_span_attributes(attributes: dict[str, str | int | float | bool]) -> None:
    """Attach attributes to the current span if it is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)


def get_current_trace_id() -> str | None:
    """Return the active trace id as 32 hex characters, or None."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return format(span_context.trace_id, "032x")
    return None


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that stamps trace_id and span_id onto log events.

    Lets a failed notification or a rejected login be matched to the request
    span that produced it.
    """
    span_context = trace.get_current_span().get_span_context()

    if span_context.is_valid:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")

    return event_dict


@overload
def traced(  # noqa: UP047
    func: Callable[P, R],
) -> Callable[P, R]: ...


@overload
def traced(
    func: None = None,
    *,
    span_name: str | None = None,
    record_exception: bool = True,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def traced(  # noqa: UP047
    func: Callable[P, R] | None = None,
    *,
    span_name: str | None = None,
    record_exception: bool = True,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap a coroutine function in a span.

    Usable bare (``@traced``) or with options
    (``@traced(span_name="auth.authenticate")``). Exceptions are recorded on
    the span and re-raised unchanged.

    Args:
        func: The function to trace (when used without parentheses).
        span_name: Name for the span (defaults to the function name).
        record_exception: Whether to record exceptions on the span.

    Returns:
        The decorated function.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        if not inspect.iscoroutinefunction(fn):
            raise TypeError(f"traced() expects a coroutine function, got {fn!r}")

        name = span_name or fn.__qualname__

        @wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            tracer = get_tracer(fn.__module__)
            with tracer.start_as_current_span(
                name, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:
                    if record_exception:
                        span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator
