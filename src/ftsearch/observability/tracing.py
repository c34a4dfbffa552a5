"""OpenTelemetry spans around server commands."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

from ftsearch.observability.context import bind_context


logger = logging.getLogger(__name__)

TRACER_NAME = "ftsearch"

_state: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(service_name: str = "ftsearch", resource_attributes: dict[str, str] | None = None) -> TracerProvider:
    """Install an SDK tracer provider; exporters are left to the application."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _state["tracer"] = None
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    if _state["tracer"] is None:
        _state["tracer"] = trace.get_tracer(TRACER_NAME)
    return _state["tracer"]


def reset_tracer() -> None:
    _state["tracer"] = None


def command_attributes(args: Sequence[Any], index: str | None = None) -> dict[str, Any]:
    """Span attributes for one command; argument values are never recorded."""
    attributes: dict[str, Any] = {
        "db.system": "redis",
        "db.operation": str(args[0]),
        "db.statement.args": len(args) - 1,
    }
    if index:
        attributes["db.ftsearch.index"] = index
    return attributes


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Start a span, expose its id to log records and mark it failed on error."""
    with get_tracer().start_as_current_span(
        name, kind=kind, attributes=attributes, record_exception=False, set_status_on_exception=False
    ) as span:
        span_context = span.get_span_context()
        fields = {}
        if span_context.is_valid:
            fields = {"trace_id": format(span_context.trace_id, "032x"), "span_id": format(span_context.span_id, "016x")}
        if attributes and "db.operation" in attributes:
            fields["command"] = str(attributes["db.operation"])
        if attributes and "db.ftsearch.index" in attributes:
            fields["index"] = str(attributes["db.ftsearch.index"])

        with bind_context(**fields):
            try:
                yield span
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                raise
