"""
Redis-backed cache (redis-py, sync client)
"""
import logging
from datetime import timedelta
from typing import Optional

import redis

from app.infrastructure.cache.base import Cache, CacheError

logger = logging.getLogger(__name__)

SCAN_BATCH = 100


class RedisCache(Cache):
    """
    Cache поверх Redis

    delete_by_prefix использует SCAN MATCH prefix* (не KEYS), чтобы не блокировать Redis.
    Все ошибки redis-py заворачиваются в CacheError.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2.0) -> "RedisCache":
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=False,
            health_check_interval=30,
        )
        return cls(client)

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.client.get(key)
        except redis.RedisError as exc:
            raise CacheError(f"redis GET {key} failed: {exc}") from exc

    def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        try:
            self.client.set(key, value, ex=ttl)
        except redis.RedisError as exc:
            raise CacheError(f"redis SET {key} failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as exc:
            raise CacheError(f"redis DEL {key} failed: {exc}") from exc

    def delete_by_prefix(self, prefix: str) -> None:
        try:
            batch = []
            for key in self.client.scan_iter(match=f"{prefix}*", count=SCAN_BATCH):
                batch.append(key)
                if len(batch) >= SCAN_BATCH:
                    self.client.delete(*batch)
                    batch = []
            if batch:
                self.client.delete(*batch)
        except redis.RedisError as exc:
            raise CacheError(f"redis prefix delete {prefix!r} failed: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as exc:
            raise CacheError(f"redis PING failed: {exc}") from exc

    def close(self) -> None:
        self.client.close()
