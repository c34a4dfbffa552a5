"""Observability for search clients: JSON logging, command spans and command metrics."""

from ftsearch.observability.context import bind_context, get_trace_context, set_trace_context
from ftsearch.observability.logging import JsonFormatter, configure_logging
from ftsearch.observability.metrics import (
    COMMAND_COUNT,
    COMMAND_LATENCY,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    record_command,
    track_command,
    track_latency,
)
from ftsearch.observability.tracing import command_attributes, create_span, get_tracer, init_tracing, reset_tracer


__all__ = [
    "COMMAND_COUNT",
    "COMMAND_LATENCY",
    "JsonFormatter",
    "bind_context",
    "command_attributes",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "record_command",
    "reset_tracer",
    "set_trace_context",
    "track_command",
    "track_latency",
]
