"""
Redis Connection
"""
import logging
from typing import Optional

import redis

from ecobid.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get Redis client (singleton)"""
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.Redis.from_url(
            settings.REDIS_URL,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
        )

    return _redis_client


def check_redis_connection(client: Optional[redis.Redis] = None) -> bool:
    """Test Redis connection"""
    try:
        (client or get_redis_client()).ping()
        return True
    except redis.RedisError as e:
        logger.error(f"❌ Redis connection failed: {e}")
        return False

