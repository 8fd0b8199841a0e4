"""
Blob store clients: a remote key/value store with sliding expiry.

Only plain get/set are used. There are no transactions or compare-and-swap,
so concurrent writers to the same key race and the last write wins.
"""

import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailableError
from shared.logging import get_logger


class BlobStore(Protocol):
    """Key/value store with sliding expiry."""

    async def get(self, key: str, sliding_ttl: Optional[int] = None) -> Optional[bytes]:
        """Return the stored bytes, resetting expiry to ``sliding_ttl`` seconds when given."""
        ...

    async def set(self, key: str, value: bytes, sliding_ttl: int) -> None:
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


class RedisBlobStore:
    """Redis-backed blob store."""

    def __init__(self, redis_url: str, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.redis: Optional[redis.Redis] = None
        self.logger = get_logger("inventory.blob_store")

    def _get_redis(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
            )
        return self.redis

    async def get(self, key: str, sliding_ttl: Optional[int] = None) -> Optional[bytes]:
        try:
            client = self._get_redis()
            if sliding_ttl:
                return await client.getex(key, ex=sliding_ttl)
            return await client.get(key)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError("Blob store read failed", {"key": key, "error": str(e)}) from e

    async def set(self, key: str, value: bytes, sliding_ttl: int) -> None:
        try:
            await self._get_redis().set(key, value, ex=sliding_ttl)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError("Blob store write failed", {"key": key, "error": str(e)}) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except (RedisError, OSError) as e:
            self.logger.warning("Blob store ping failed", error=str(e))
            return False

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Blob store connection closed")


class InMemoryBlobStore:
    """Process-local blob store with the same sliding expiry rules, for local runs and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[bytes, float]] = {}

    def _live_value(self, key: str) -> Optional[bytes]:
        record = self._data.get(key)
        if record is None:
            return None
        value, expires_at = record
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str, sliding_ttl: Optional[int] = None) -> Optional[bytes]:
        value = self._live_value(key)
        if value is not None and sliding_ttl:
            self._data[key] = (value, self._clock() + sliding_ttl)
        return value

    async def set(self, key: str, value: bytes, sliding_ttl: int) -> None:
        self._data[key] = (bytes(value), self._clock() + sliding_ttl)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._data.clear()

    def keys(self):
        """Keys that have not expired."""
        return [key for key in list(self._data) if self._live_value(key) is not None]


def create_blob_store(backend: str, redis_url: str) -> BlobStore:
    """Build the configured blob store backend."""
    if backend == "memory":
        return InMemoryBlobStore()
    if backend == "redis":
        return RedisBlobStore(redis_url)
    raise ValueError(f"Unknown blob store backend: {backend}")
