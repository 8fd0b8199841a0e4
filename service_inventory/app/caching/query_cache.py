"""
Two-tier cache for queries addressed by a parameter tuple.

The fast path is a direct key for the exact tuple. Behind it sits a bounded
map of recently seen tuples for the scope, so switching back to an earlier
combination (say, the previous page) is still served from cache.
"""

from typing import Any, Awaitable, Callable, Dict, Generic, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from shared.errors import CacheCorruptError

from ..domain.models import TenantScope
from .base import CacheComponent
from .eviction import enforce_limit, insert_entry
from .payloads import QueryCacheEntry, decode_entries, decode_model, encode_entries, encode_model

ModelT = TypeVar("ModelT", bound=BaseModel)

STRATEGY = "query"


class ParameterizedQueryCache(CacheComponent, Generic[ModelT]):
    """Fast-path key plus a bounded per-scope map keyed by the full parameter tuple."""

    def __init__(self, payload_model: Type[ModelT], *args, family: Optional[str] = None, **kwargs):
        kwargs.setdefault("logger_name", "inventory.query_cache")
        super().__init__(*args, **kwargs)
        self.payload_model = payload_model
        self.family = family
        self.entry_model = QueryCacheEntry[payload_model]

    def _keys_for(self, scope: TenantScope, params: Mapping[str, Any]) -> Tuple[str, str, str]:
        tuple_key = self.keys.canonical_params(params)
        direct_params = dict(params)
        if self.family:
            direct_params["_family"] = self.family
        return (
            self.keys.direct_key(self.entity_type, scope, direct_params),
            self.keys.query_map_key(self.entity_type, scope, self.family),
            tuple_key,
        )

    async def get_or_fetch(
        self,
        scope: TenantScope,
        params: Mapping[str, Any],
        fetch: Callable[[], Awaitable[ModelT]],
    ) -> Tuple[ModelT, bool]:
        """Return ``(value, from_cache)`` checking the fast path, then the map, then the catalog."""
        direct_key, map_key, tuple_key = self._keys_for(scope, params)

        raw, _ = await self._read(direct_key)
        if raw is not None:
            try:
                value = decode_model(raw, self.payload_model)
            except CacheCorruptError as e:
                self._report_corrupt(direct_key, e.details.get("error", e.message))
            else:
                self._count("cache_hits_total", strategy=f"{STRATEGY}_direct")
                return value, True

        entries, map_readable = await self._load_map(map_key)
        entry = entries.get(tuple_key)
        if entry is not None:
            self.logger.debug("Query map hit", key=map_key, params=tuple_key)
            self._count("cache_hits_total", strategy=f"{STRATEGY}_map")
            refreshed = entry.model_copy(update={"created_at": self.clock()})
            await self._write(direct_key, encode_model(entry.payload))
            await self._store_map(map_key, entries, refreshed)
            return entry.payload, True

        self._count("cache_misses_total", strategy=STRATEGY)
        value = await self._call_catalog("query", fetch)

        await self._write(direct_key, encode_model(value))
        if map_readable:
            new_entry = self.entry_model(params=tuple_key, payload=value, created_at=self.clock())
            await self._store_map(map_key, entries, new_entry)
        return value, False

    async def _load_map(self, key: str) -> Tuple[Dict[str, QueryCacheEntry], bool]:
        raw, readable = await self._read(key)
        if raw is None:
            return {}, readable
        try:
            return decode_entries(raw, self.entry_model), True
        except CacheCorruptError as e:
            self._report_corrupt(key, e.details.get("error", e.message))
            return {}, True

    async def _store_map(self, key: str, entries: Dict[str, QueryCacheEntry], entry: QueryCacheEntry) -> None:
        updated = insert_entry(entries, entry.params, entry, ignore_case=False)
        updated, evicted = enforce_limit(updated, self.policy.max_entries)
        if evicted:
            self._count("cache_evictions_total", len(evicted))
        await self._write(key, encode_entries(updated, self.cache_type))
