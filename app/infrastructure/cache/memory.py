"""
In-process cache (tests, single-node dev runs with CACHE_BACKEND=memory)
"""
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from app.infrastructure.cache.base import Cache


class InMemoryCache(Cache):
    """Dict-backed cache with lazy TTL expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at <= self._clock():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl.total_seconds())

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._data if k.startswith(prefix)]:
                del self._data[key]
