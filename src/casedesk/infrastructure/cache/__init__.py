"""
Redis Infrastructure
====================

Async Redis client used for the agent-only lock, the chat log and
per-user session state.

Every call carries the configured socket timeout, so a slow Redis bounds
the latency of a single request instead of blocking it.
"""

from typing import Optional

from redis.asyncio import Redis

from casedesk.config import Settings, settings as default_settings
from casedesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_client: Optional[Redis] = None


def init_redis(config: Optional[Settings] = None) -> Redis:
    """
    Create the shared Redis client.

    Should be called during application startup. The connection is
    opened lazily on the first command.
    """
    global _client
    config = config or default_settings

    _client = Redis.from_url(
        config.redis_url,
        password=config.redis_password,
        decode_responses=True,
        socket_timeout=config.redis_timeout_seconds,
        socket_connect_timeout=config.redis_timeout_seconds,
        health_check_interval=30,
    )
    logger.info("Redis client initialized", extra={"redis_url": config.redis_url})
    return _client


async def close_redis() -> None:
    """Close the shared client. Safe to call when not initialized."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
