"""Command channel seam.

Everything that reaches the server goes through ``CommandExecutor.call``,
which wraps the channel's ``execute_command`` in a span, command metrics
and a debug log line. redis-py's ``Redis`` client satisfies
``CommandChannel`` as-is; tests substitute a recording fake.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from opentelemetry.trace import SpanKind

from ftsearch.observability.metrics import track_command
from ftsearch.observability.tracing import command_attributes, create_span


logger = logging.getLogger(__name__)


@runtime_checkable
class CommandChannel(Protocol):
    """Request/reply transport: one argument array in, one reply out."""

    def execute_command(self, *args: Any, **options: Any) -> Any:  # pragma: no cover - Protocol only
        """Send a command and return the server's reply."""


class CommandExecutor:
    """Sends commands over a channel with tracing and metrics."""

    def __init__(self, channel: CommandChannel) -> None:
        if not isinstance(channel, CommandChannel):
            raise TypeError(f"channel must provide execute_command(), got {type(channel).__name__}")
        self._channel = channel

    @property
    def channel(self) -> CommandChannel:
        return self._channel

    def call(self, *args: Any, index: str | None = None) -> Any:
        """Send one command; ``index`` names the search index it targets, if any."""
        command = str(args[0])
        attributes = command_attributes(args, index=index)
        with create_span("ftsearch.command", kind=SpanKind.CLIENT, attributes=attributes), track_command(command):
            logger.debug("Sending %s with %d arguments", command, len(args) - 1)
            return self._channel.execute_command(*args)
