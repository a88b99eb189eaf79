import logging
from typing import Optional

import redis

from ambitiouscare.core import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def _masked(url: str) -> str:
    if "@" not in url:
        return url
    scheme = url.split(":", 1)[0]
    return f"{scheme}://****@{url.rsplit('@', 1)[1]}"


def get_redis_client() -> redis.Redis:
    """Return the shared Redis connection, connecting on first use."""
    global redis_client

    if redis_client is None:
        logger.info("Connecting to Redis at %s", _masked(config.REDIS_URL))
        client = redis.from_url(
            config.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        try:
            client.ping()
        except redis.RedisError:
            logger.error("Failed to connect to Redis at %s", _masked(config.REDIS_URL))
            raise
        redis_client = client

    return redis_client
