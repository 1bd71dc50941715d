"""
Cache singleton selected by Settings.CACHE_BACKEND
"""
import logging

from app.config import get_settings
from app.infrastructure.cache.base import Cache
from app.infrastructure.cache.memory import InMemoryCache
from app.infrastructure.cache.redis_cache import RedisCache

logger = logging.getLogger(__name__)

_cache = None


def get_cache() -> Cache:
    """Get or create the process-wide cache (singleton)"""
    global _cache
    if _cache is None:
        settings = get_settings()
        if settings.CACHE_BACKEND == "memory":
            _cache = InMemoryCache()
        elif settings.CACHE_BACKEND == "redis":
            _cache = RedisCache.from_url(settings.REDIS_URL, settings.REDIS_SOCKET_TIMEOUT)
        else:
            raise ValueError(f"Unknown CACHE_BACKEND: {settings.CACHE_BACKEND}")
        logger.info("Cache backend: %s", settings.CACHE_BACKEND)
    return _cache


def close_cache() -> None:
    global _cache
    if isinstance(_cache, RedisCache):
        _cache.close()
    _cache = None
