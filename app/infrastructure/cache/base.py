"""
Cache port - key-value store contract used for read-through caching

Значения - байты (JSON), TTL обязателен. Кэш никогда не является источником истины.
"""
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional


class CacheError(Exception):
    """Cache transport failure (connection, timeout, protocol)."""


class Cache(ABC):
    """
    Базовый класс для всех реализаций кэша

    get() возвращает None при промахе; ошибки транспорта - CacheError.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def delete_by_prefix(self, prefix: str) -> None:
        """Delete every key starting with prefix."""
        ...
