"""Unit tests for the client entry point."""

import pytest
import redis

from ftsearch.client import connect, create_redis
from ftsearch.commands import SearchCommands
from ftsearch.config import Settings


pytestmark = pytest.mark.unit


def test_create_redis_from_host_settings():
    client = create_redis(Settings(redis_host="cache", redis_port=6380, redis_db=2))

    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert kwargs["decode_responses"] is True


def test_create_redis_from_url():
    client = create_redis(Settings(redis_url="redis://cache:6390/4"))

    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache"
    assert kwargs["port"] == 6390
    assert kwargs["db"] == 4


def test_connect_reuses_given_client(channel):
    settings = Settings(default_storage_type="json", default_dialect=3)

    commands = connect(settings, client=channel)

    assert isinstance(commands, SearchCommands)
    assert commands.channel is channel
    assert commands.default_storage_type == "json"
    assert commands.default_dialect == 3


def test_connect_builds_redis_client():
    commands = connect(Settings())

    assert isinstance(commands.channel, redis.Redis)
