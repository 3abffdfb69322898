from functools import lru_cache

import redis
import redis.asyncio as aioredis
from rq import Queue

from app.core.settings import settings


@lru_cache
def get_sync_redis() -> redis.Redis:
    """Sync Redis client shared by RQ and event publishing (binary payloads intact for RQ)."""
    return redis.from_url(settings.redis_url, decode_responses=False)


@lru_cache
def get_async_redis() -> aioredis.Redis:
    """Async Redis client for SSE pub/sub."""
    return aioredis.from_url(settings.redis_url, decode_responses=True)


def get_monitoring_queue() -> Queue:
    """RQ queue for background monitoring sweeps."""
    return Queue(settings.rq_queue_name, connection=get_sync_redis())
