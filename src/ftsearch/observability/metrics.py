"""Command metrics.

Every command is counted by name and outcome and its round trip is timed.
Values go to Prometheus collectors in the default registry and to the
matching OpenTelemetry instruments; the latter are no-ops until an
application installs a meter provider (``init_metrics`` does so).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import time
from typing import Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest


LATENCY_METRIC = "ftsearch_command_latency_seconds"
COUNT_METRIC = "ftsearch_commands_total"
LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)

COMMAND_LATENCY = Histogram(LATENCY_METRIC, "Round-trip latency of search commands", ["command"], buckets=LATENCY_BUCKETS)
COMMAND_COUNT = Counter(COUNT_METRIC, "Search commands sent to the server", ["command", "status"])

_otel: dict[str, Any] = {"provider": None, "latency": None, "count": None}


def init_metrics(service_name: str = "ftsearch", resource_attributes: dict[str, str] | None = None) -> MeterProvider:
    """Install an SDK meter provider once per process and return it."""
    if _otel["provider"] is None:
        provider = MeterProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
        otel_metrics.set_meter_provider(provider)
        _otel.update(provider=provider, latency=None, count=None)
    return _otel["provider"]


def _instruments() -> tuple[Any, Any]:
    if _otel["latency"] is None:
        meter = otel_metrics.get_meter("ftsearch")
        _otel["latency"] = meter.create_histogram(LATENCY_METRIC, unit="s", description="Round-trip latency")
        _otel["count"] = meter.create_counter(COUNT_METRIC, description="Search commands sent")
    return _otel["latency"], _otel["count"]


def record_command(command: str, status: str, seconds: float) -> None:
    """Record one finished command in both metric backends."""
    latency, count = _instruments()
    COMMAND_LATENCY.labels(command=command).observe(seconds)
    COMMAND_COUNT.labels(command=command, status=status).inc()
    latency.record(seconds, {"command": command})
    count.add(1, {"command": command, "status": status})


@contextmanager
def track_latency(command: str) -> Iterator[None]:
    """Time a block as ``command`` without counting it."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        COMMAND_LATENCY.labels(command=command).observe(elapsed)
        _instruments()[0].record(elapsed, {"command": command})


@contextmanager
def track_command(command: str) -> Iterator[None]:
    """Time and count a command; the status is ``error`` when the block raises."""
    start = time.perf_counter()
    status = "error"
    try:
        yield
        status = "ok"
    finally:
        record_command(command, status, time.perf_counter() - start)


def get_metrics(registry: CollectorRegistry = REGISTRY) -> bytes:
    """Prometheus text exposition of ``registry``."""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
