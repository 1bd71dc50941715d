"""
Read-through cache helpers

Кэш - best effort: любая ошибка кэша логируется и не доходит до клиента,
источник истины всегда storage.
"""
import logging
from datetime import timedelta
from typing import Callable, TypeVar

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from app.infrastructure.cache.base import Cache, CacheError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_through(
    cache: Cache,
    key: str,
    ttl: timedelta,
    adapter: TypeAdapter,
    loader: Callable[[], T],
) -> T:
    """
    Прочитать значение из кэша, при промахе - из storage с записью в кэш

    Args:
        cache: Кэш
        key: Ключ
        ttl: Время жизни записи
        adapter: TypeAdapter для (де)сериализации значения в JSON
        loader: Загрузка значения из storage (ошибки storage пробрасываются)

    Returns:
        Значение из кэша или из storage

    Example:
        >>> read_through(cache, "people:all", timedelta(minutes=30),
        ...              TypeAdapter(list[PersonView]), repo.get_all)
    """
    try:
        raw = cache.get(key)
    except CacheError as e:
        logger.warning("cache get failed for %s: %s", key, e)
        raw = None

    if raw is not None:
        try:
            value = adapter.validate_json(raw)
            logger.debug("cache hit: %s", key)
            return value
        except PydanticValidationError as e:
            logger.warning("cache payload for %s is corrupt, reloading: %s", key, e)

    logger.debug("cache miss: %s", key)
    value = loader()

    try:
        cache.set(key, adapter.dump_json(value), ttl)
    except CacheError as e:
        logger.warning("cache set failed for %s: %s", key, e)

    return value


def safe_delete(cache: Cache, *keys: str) -> None:
    for key in keys:
        try:
            cache.delete(key)
        except CacheError as e:
            logger.warning("cache delete failed for %s: %s", key, e)


def safe_delete_prefix(cache: Cache, prefix: str) -> None:
    try:
        cache.delete_by_prefix(prefix)
    except CacheError as e:
        logger.warning("cache delete by prefix failed for %s: %s", prefix, e)
