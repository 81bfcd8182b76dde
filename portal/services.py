"""Shared service instances for the API routers."""

from __future__ import annotations

import structlog

from modules.alerts.aggregator import AlertAggregator
from modules.weather.client import WeatherClient
from shared.cache import RedisBackend, TTLCache
from shared.redis import close_redis, get_redis

logger = structlog.get_logger()

_cache: TTLCache | None = None


async def init_cache() -> None:
    """Connect the Redis-backed cache. Runs without caching when Redis is unavailable."""
    global _cache
    try:
        redis_client = await get_redis()
        if redis_client is None:
            logger.info("cache_disabled")
            return
        await redis_client.ping()
        _cache = TTLCache(RedisBackend(redis_client), namespace="radar")
        logger.info("cache_redis_connected")
    except Exception as e:
        logger.warning("cache_redis_unavailable", error=str(e))
        _cache = None


async def shutdown_cache() -> None:
    global _cache
    _cache = None
    await close_redis()


def get_alert_aggregator() -> AlertAggregator:
    return AlertAggregator(cache=_cache)


def get_weather_client() -> WeatherClient:
    return WeatherClient(cache=_cache)
