"""Redis client construction for the shared dashboard cache."""

import logging
from typing import Any

from redis import Redis

from src.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Redis:
    """Create the shared Redis client.

    The client owns its own connection pool and is reused across requests.
    Responses are decoded to str so cached JSON can be loaded directly.

    Args:
        settings: Application settings.

    Returns:
        Redis: Redis client.
    """
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )


def close_redis_client(client: Redis) -> None:
    """Close the client and disconnect its pool."""
    try:
        client.close()
    except Exception as e:
        logger.warning("Error closing Redis client: %s", str(e))


def check_cache_connection(client: Redis) -> dict[str, Any]:
    """Check if the cache is reachable.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client.ping()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
