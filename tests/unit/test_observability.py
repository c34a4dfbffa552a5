"""Unit tests for observability module."""

import io
import json
import logging
import sys

from opentelemetry import trace as trace_api
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode
from prometheus_client import REGISTRY
import pytest

from ftsearch.channel import CommandExecutor
from ftsearch.client import connect
from ftsearch.config import Settings
from ftsearch.observability import (
    JsonFormatter,
    bind_context,
    command_attributes,
    configure_logging,
    create_span,
    get_metrics,
    get_metrics_content_type,
    get_trace_context,
    init_tracing,
    record_command,
    set_trace_context,
    track_latency,
)
from ftsearch.observability import tracing as tracing_module
from ftsearch.observability.context import update_span_id


def _record(msg: str = "test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="ftsearch.search.index",
        level=logging.INFO,
        pathname="index.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        set_trace_context("a" * 32, "b" * 16)

        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["trace_id"] == "a" * 32
        assert data["span_id"] == "b" * 16
        assert data["component"] == "index"
        assert "command" not in data

    def test_format_includes_bound_command(self):
        with bind_context(command="FT.SEARCH", index="products"):
            data = json.loads(JsonFormatter().format(_record()))

        assert data["command"] == "FT.SEARCH"
        assert data["index"] == "products"

    def test_format_includes_extra_fields_and_redacts(self):
        data = json.loads(JsonFormatter().format(_record(doc_id="p1", redis_password="hunter2", raw=b"\xffkey")))

        assert data["doc_id"] == "p1"
        assert data["redis_password"] == "[REDACTED]"
        assert data["raw"].endswith("key")
        assert "pathname" not in data

    def test_format_truncates_long_messages(self):
        data = json.loads(JsonFormatter().format(_record("x" * 3000)))

        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3

    def test_format_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in data["exception"]


@pytest.mark.unit
class TestTraceContext:
    def test_get_trace_context_generates_ids(self):
        set_trace_context("", "")

        ctx = get_trace_context()

        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16

    def test_update_span_id_preserves_trace_id(self):
        set_trace_context("t" * 32, "s" * 16)

        update_span_id("n" * 16)

        assert get_trace_context() == {"trace_id": "t" * 32, "span_id": "n" * 16}

    def test_bind_context_restores_previous_fields(self):
        set_trace_context("t" * 32, "s" * 16)

        with bind_context(command="FT.INFO") as ctx:
            assert ctx["command"] == "FT.INFO"
            assert ctx["trace_id"] == "t" * 32

        assert "command" not in get_trace_context()


@pytest.mark.unit
class TestTracing:
    @staticmethod
    def _setup_exporter() -> InMemorySpanExporter:
        exporter = InMemorySpanExporter()
        provider = trace_api.get_tracer_provider()
        if not isinstance(provider, TracerProvider):
            provider = init_tracing("test-service")
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return exporter

    def test_get_tracer_initializes_when_missing(self):
        tracing_module.reset_tracer()

        assert tracing_module.get_tracer() is not None

    def test_command_attributes_never_include_values(self):
        attributes = command_attributes(("FT.SEARCH", "products", "secret query"), index="products")

        assert attributes == {
            "db.system": "redis",
            "db.operation": "FT.SEARCH",
            "db.statement.args": 2,
            "db.ftsearch.index": "products",
        }

    def test_create_span_sets_attributes(self):
        exporter = self._setup_exporter()

        with create_span("unit.span", kind=SpanKind.CLIENT, attributes={"db.operation": "FT.INFO"}):
            assert get_trace_context()["command"] == "FT.INFO"

        span = exporter.get_finished_spans()[-1]
        assert span.name == "unit.span"
        assert span.kind is SpanKind.CLIENT
        assert span.attributes["db.operation"] == "FT.INFO"

    def test_create_span_records_errors(self):
        exporter = self._setup_exporter()

        with pytest.raises(ValueError, match="boom"), create_span("unit.failing"):
            raise ValueError("boom")

        span = exporter.get_finished_spans()[-1]
        assert span.status.status_code == StatusCode.ERROR
        assert [event.name for event in span.events] == ["exception"]

    def test_executor_call_emits_client_span(self, channel):
        exporter = self._setup_exporter()

        CommandExecutor(channel).call("FT.INFO", "products")

        span = exporter.get_finished_spans()[-1]
        assert span.name == "ftsearch.command"
        assert span.attributes["db.system"] == "redis"
        assert span.attributes["db.operation"] == "FT.INFO"
        assert span.attributes["db.statement.args"] == 1
        assert "db.ftsearch.index" not in span.attributes

    def test_index_scoped_commands_carry_index(self, commands):
        exporter = self._setup_exporter()
        seen = {}

        def capture(*args, **options):
            seen.update(get_trace_context())
            return []

        commands.channel.execute_command = capture
        commands.ft_tagvals("products", "category")

        span = exporter.get_finished_spans()[-1]
        assert span.attributes["db.ftsearch.index"] == "products"
        assert seen["index"] == "products"
        assert seen["command"] == "FT.TAGVALS"


@pytest.mark.unit
class TestMetrics:
    """Tests for Prometheus metrics."""

    def test_get_metrics_exposes_command_metrics(self, channel):
        CommandExecutor(channel).call("FT._LIST")

        output = get_metrics()

        assert isinstance(output, bytes)
        assert b"ftsearch_commands_total" in output
        assert b"ftsearch_command_latency_seconds" in output
        assert get_metrics_content_type().startswith("text/plain")

    def test_record_command_counts_and_times(self):
        count_before = _sample("ftsearch_commands_total", command="UNIT.RECORD", status="ok")
        latency_before = _sample("ftsearch_command_latency_seconds_count", command="UNIT.RECORD")

        record_command("UNIT.RECORD", "ok", 0.002)

        assert _sample("ftsearch_commands_total", command="UNIT.RECORD", status="ok") == count_before + 1
        assert _sample("ftsearch_command_latency_seconds_count", command="UNIT.RECORD") == latency_before + 1

    def test_track_latency_records_histogram_only(self):
        with track_latency("UNIT.LATENCY"):
            pass

        assert _sample("ftsearch_command_latency_seconds_count", command="UNIT.LATENCY") >= 1
        assert _sample("ftsearch_commands_total", command="UNIT.LATENCY", status="ok") == 0


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_logging_sets_level(self):
        configure_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("redis").level == logging.WARNING

    def test_configure_logging_plain_format_and_overrides(self):
        handler = configure_logging(level="INFO", json_output=False, logger_levels={"ftsearch.channel": "error"})

        root = logging.getLogger()
        assert root.handlers == [handler]
        assert not isinstance(handler.formatter, JsonFormatter)
        assert logging.getLogger("ftsearch.channel").level == logging.ERROR

    def test_configure_logging_writes_json_lines(self):
        stream = io.StringIO()
        configure_logging(level="INFO", stream=stream)

        logging.getLogger("ftsearch.unit").info("hello", extra={"doc_id": "p1"})

        data = json.loads(stream.getvalue().splitlines()[-1])
        assert data["message"] == "hello"
        assert data["doc_id"] == "p1"

    def test_connect_applies_logging_settings(self, channel):
        connect(Settings(log_level="warning", log_json=False), client=channel, setup_logging=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, JsonFormatter)
