"""
Exact-key cache: one blob per parameter tuple, expiring only through its sliding TTL.
"""

from typing import Awaitable, Callable, Generic, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from shared.errors import CacheCorruptError

from .base import CacheComponent
from .payloads import decode_model, encode_model

ModelT = TypeVar("ModelT", bound=BaseModel)

STRATEGY = "direct"


class DirectCache(CacheComponent, Generic[ModelT]):
    """Read-through cache for payloads addressed by an exact key."""

    def __init__(self, payload_model: Type[ModelT], *args, **kwargs):
        kwargs.setdefault("logger_name", "inventory.direct_cache")
        super().__init__(*args, **kwargs)
        self.payload_model = payload_model

    async def get(self, key: str) -> Optional[ModelT]:
        """Cached payload for ``key`` or None; a hit restarts the sliding window."""
        raw, _ = await self._read(key)
        if raw is None:
            return None
        try:
            return decode_model(raw, self.payload_model)
        except CacheCorruptError as e:
            self._report_corrupt(key, e.details.get("error", e.message))
            return None

    async def set(self, key: str, value: ModelT) -> bool:
        return await self._write(key, encode_model(value))

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Optional[ModelT]]],
    ) -> Tuple[Optional[ModelT], bool]:
        """Return ``(value, from_cache)``; catalog results of None are passed through uncached."""
        cached = await self.get(key)
        if cached is not None:
            self.logger.debug("Direct cache hit", key=key, entity_type=self.cache_type)
            self._count("cache_hits_total", strategy=STRATEGY)
            return cached, True

        self._count("cache_misses_total", strategy=STRATEGY)
        value = await self._call_catalog("lookup", fetch)
        if value is None:
            return None, False

        await self.set(key, value)
        return value, False
