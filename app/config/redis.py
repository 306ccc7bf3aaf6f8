# app/config/redis.py
"""Redis connections: the cache database and the Celery broker database"""
import redis.asyncio as redis
from typing import Dict, Optional

from app.config.settings import get_settings

settings = get_settings()

# Celery's Redis transport keeps every queue as a list named after the queue
NOTIFICATION_QUEUE = "notifications"

# One connection pool per Redis URL
_redis_pools: Dict[str, redis.ConnectionPool] = {}


def get_redis_pool(url: Optional[str] = None) -> redis.ConnectionPool:
    """Get or create the connection pool for ``url`` (defaults to REDIS_URL)"""
    url = url or settings.REDIS_URL
    pool = _redis_pools.get(url)
    if pool is None:
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
        )
        _redis_pools[url] = pool
    return pool


async def get_redis(url: Optional[str] = None) -> redis.Redis:
    """Get Redis client from pool"""
    return redis.Redis(connection_pool=get_redis_pool(url))


async def notification_backlog() -> int:
    """Booking notifications waiting in the broker for a worker"""
    client = await get_redis(settings.CELERY_BROKER_URL)
    try:
        return await client.llen(NOTIFICATION_QUEUE)
    finally:
        await client.aclose()
