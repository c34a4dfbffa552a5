"""Shared test fixtures and configuration."""

from collections import defaultdict, deque
import os
from typing import Any

import pytest


# Complete test environment that overrides every FTSEARCH_* setting
TEST_ENV = {
    "FTSEARCH_REDIS_URL": "",
    "FTSEARCH_REDIS_HOST": "localhost",
    "FTSEARCH_REDIS_PORT": "6379",
    "FTSEARCH_REDIS_DB": "0",
    "FTSEARCH_DECODE_RESPONSES": "true",
    "FTSEARCH_DEFAULT_STORAGE_TYPE": "hash",
    "FTSEARCH_LOG_LEVEL": "info",
    "FTSEARCH_LOG_JSON": "true",
}

# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value
for key in ("FTSEARCH_REDIS_PASSWORD", "FTSEARCH_SOCKET_TIMEOUT", "FTSEARCH_DEFAULT_DIALECT"):
    os.environ.pop(key, None)


class FakeChannel:
    """Records every command and replays canned replies per command name.

    Replies queued with ``reply`` are consumed in order; once a command's
    queue is empty it answers ``"OK"``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self._replies: dict[str, deque[Any]] = defaultdict(deque)

    def reply(self, command: str, *replies: Any) -> "FakeChannel":
        self._replies[command].extend(replies)
        return self

    def execute_command(self, *args: Any, **options: Any) -> Any:
        self.calls.append(args)
        queue = self._replies[str(args[0])]
        if not queue:
            return "OK"
        reply = queue.popleft()
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def last_call(self) -> tuple[Any, ...]:
        return self.calls[-1]

    def commands(self) -> list[str]:
        return [str(call[0]) for call in self.calls]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset FTSEARCH_* variables before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("FTSEARCH_REDIS_PASSWORD", "FTSEARCH_SOCKET_TIMEOUT", "FTSEARCH_DEFAULT_DIALECT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def commands(channel):
    from ftsearch.commands import SearchCommands

    return SearchCommands(channel)
