"""Purges a user's cached dashboard views after delivery changes."""

import logging
from uuid import UUID

from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def next_delivery_key(user_id: UUID | str) -> str:
    return f"user:{user_id}:next-delivery"


def subscriptions_key(user_id: UUID | str) -> str:
    return f"user:{user_id}:subscriptions"


class CacheInvalidator:
    """Deletes dashboard cache entries for a user.

    Only call after the enclosing transaction has committed; invalidating
    earlier lets a concurrent reader repopulate the cache with stale rows.
    """

    def __init__(self, client: Redis) -> None:
        self.client = client

    def invalidate_user(self, user_id: UUID | str) -> None:
        """Delete the user's next-delivery and subscriptions entries.

        Cache failures are logged and swallowed: entries expire on their TTL.
        """
        keys = (next_delivery_key(user_id), subscriptions_key(user_id))
        try:
            self.client.delete(*keys)
            logger.debug("Invalidated dashboard cache for user %s", user_id)
        except RedisError as e:
            logger.warning(
                "Failed to invalidate dashboard cache for user %s: %s",
                user_id,
                str(e),
            )
