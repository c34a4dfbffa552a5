"""Per-command correlation fields shared by spans and log records.

The active command, index and trace identifiers live in a ContextVar so that
any log line written while a command is in flight carries them, including
lines from redis-py's own loggers.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


_command_context: ContextVar[dict[str, str] | None] = ContextVar("ftsearch_command_context", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict[str, str]:
    """Correlation fields of the current context; trace ids are minted on first use."""
    ctx = _command_context.get()
    if not ctx or not ctx.get("trace_id"):
        ctx = {**(ctx or {}), "trace_id": new_trace_id(), "span_id": new_span_id()}
        _command_context.set(ctx)
    return dict(ctx)


def set_trace_context(trace_id: str, span_id: str, **fields: str) -> None:
    _command_context.set({"trace_id": trace_id, "span_id": span_id, **fields})


def update_span_id(span_id: str) -> None:
    _command_context.set({**(_command_context.get() or {}), "span_id": span_id})


@contextmanager
def bind_context(**fields: str) -> Iterator[dict[str, str]]:
    """Overlay correlation fields for the duration of a block.

    The previous context is restored on exit, so nested commands do not leak
    their ``command`` or ``index`` into the caller's log lines.
    """
    token = _command_context.set({**get_trace_context(), **fields})
    try:
        yield _command_context.get() or {}
    finally:
        _command_context.reset(token)
