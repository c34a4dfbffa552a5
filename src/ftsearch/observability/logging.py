"""JSON log lines for search clients, correlated with the command in flight."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import IO, Any

import orjson

from ftsearch.observability.context import get_trace_context


# Attributes every LogRecord has; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

_CONTEXT_FIELDS = ("trace_id", "span_id", "command", "index")


class JsonFormatter(logging.Formatter):
    """One orjson-encoded object per record.

    Secrets passed as extras (``password=...``) are masked, oversized
    messages are cut at ``MAX_MESSAGE_LEN`` and byte values are decoded.
    """

    SECRET_KEYS = frozenset({"password", "redis_password", "auth", "token", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000
    MAX_VALUE_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": record.name.rsplit(".", 1)[-1],
            "message": message,
        }
        ctx = get_trace_context()
        entry.update({key: ctx[key] for key in _CONTEXT_FIELDS if ctx.get(key)})

        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            entry[key] = self._mask(key, value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=self._fallback).decode("utf-8")

    def _mask(self, key: str, value: Any) -> Any:
        if key.lower() in self.SECRET_KEYS:
            return "[REDACTED]"
        if isinstance(value, str) and len(value) > self.MAX_VALUE_LEN:
            return value[: self.MAX_VALUE_LEN] + "..."
        return value

    @staticmethod
    def _fallback(value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", errors="replace")
        if isinstance(value, (set, frozenset)):
            return sorted(value, key=str)
        return str(value)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    stream: IO[str] | None = None,
    logger_levels: dict[str, str] | None = None,
) -> logging.Handler:
    """Replace the root handlers with one stream handler and return it.

    redis-py is capped at WARNING unless ``logger_levels`` says otherwise.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    levels = {"redis": "WARNING", **(logger_levels or {})}
    for name, logger_level in levels.items():
        logging.getLogger(name).setLevel(logger_level.upper())
    return handler
