"""Entry point that wires a redis-py connection to the search commands."""

from __future__ import annotations

import logging

import redis

from ftsearch.commands import SearchCommands
from ftsearch.config import Settings
from ftsearch.observability.logging import configure_logging


logger = logging.getLogger(__name__)


def create_redis(settings: Settings) -> redis.Redis:
    """Build a redis-py client from settings."""
    kwargs = settings.connection_kwargs()
    if settings.redis_url:
        return redis.Redis.from_url(settings.redis_url, **kwargs)
    return redis.Redis(**kwargs)


def connect(
    settings: Settings | None = None,
    *,
    client: redis.Redis | None = None,
    setup_logging: bool = False,
) -> SearchCommands:
    """Return search commands bound to a redis-py client.

    Args:
        settings: Connection settings (default: loaded from the environment)
        client: Existing client to reuse instead of opening a new one
        setup_logging: Install the root log handler from ``log_level`` and ``log_json``
    """
    settings = settings or Settings()
    if setup_logging:
        configure_logging(settings.log_level, settings.log_json)
    if client is None:
        client = create_redis(settings)
        target = settings.redis_url or f"{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
        logger.info("Connecting search client to %s", target)
    return SearchCommands(
        client,
        default_storage_type=settings.default_storage_type,
        default_dialect=settings.default_dialect,
    )
