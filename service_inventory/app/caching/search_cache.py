"""
Incremental search cache.

Each (tenant, user, entity type) scope owns one map of recent search terms,
stored as a single blob and rebuilt from the blob store on every request.
A new term that extends a cached term is answered by filtering the cached
snapshot instead of querying the catalog.

Only the page the catalog returned is cached under a term, so a narrower
term derived from it only sees matches inside that page.

There is no locking: two concurrent requests for one scope both read the
map, and the later write replaces the earlier one. That loses an entry at
worst, never correctness, because every miss falls back to the catalog.
"""

from typing import Dict, Generic, List, Type, TypeVar

from shared.errors import CacheCorruptError

from ..catalog.matching import matches, normalize_term
from ..catalog.store import CatalogStore
from ..domain.models import EntitySummary, SearchResult, TenantScope
from .base import CacheComponent
from .eviction import enforce_limit, insert_entry
from .pagination import PageSlice, page_from_store, paginate, validate_page_request
from .payloads import SearchCacheEntry, SnapshotSource, decode_entries, encode_entries
from .prefix_resolver import find_reusable_entry

SummaryT = TypeVar("SummaryT", bound=EntitySummary)

STRATEGY = "search"


class SearchCacheManager(CacheComponent, Generic[SummaryT]):
    """Resolves term searches for one entity type through the per-scope search map."""

    def __init__(self, item_model: Type[SummaryT], catalog: CatalogStore, *args, **kwargs):
        kwargs.setdefault("logger_name", "inventory.search_cache")
        super().__init__(*args, **kwargs)
        self.item_model = item_model
        self.catalog = catalog
        self.entry_model = SearchCacheEntry[item_model]

    async def resolve(self, term: str, page: int, page_size: int, scope: TenantScope) -> SearchResult[SummaryT]:
        """Return one page of results for ``term``, from cache when possible."""
        validate_page_request(page, page_size)
        term = normalize_term(term)
        key = self.keys.search_map_key(self.entity_type, scope)

        entries, readable = await self._load_entries(key)

        match = find_reusable_entry(term, entries) if entries else None
        if match is not None:
            parent_key, parent = match
            entry, page_slice = self._derive(term, parent, page, page_size)
            self.logger.debug(
                "Search cache hit",
                entity_type=self.cache_type,
                term=term,
                parent_term=parent_key,
                source=entry.source.value,
            )
            self._count("cache_hits_total", strategy=STRATEGY)
            await self._store_entries(key, entries, entry)
            return self._to_result(page_slice, from_cache=True)

        self._count("cache_misses_total", strategy=STRATEGY)
        items, total_count = await self._call_catalog(
            "search",
            lambda: self.catalog.search(term, scope, page, page_size),
        )
        items = list(items)
        entry = self.entry_model(
            term=term,
            snapshot=items,
            created_at=self.clock(),
            source=SnapshotSource.CATALOG,
            page=page,
            page_size=page_size,
            total_count=total_count,
        )

        if readable:
            await self._store_entries(key, entries, entry)
        else:
            # The current map could not be read; do not replace it blind
            self.logger.debug("Skipping search cache write after failed read", key=key)

        return self._to_result(page_from_store(items, total_count, page, page_size), from_cache=False)

    def _derive(self, term: str, parent: SearchCacheEntry, page: int, page_size: int):
        """Build the entry for ``term`` from its parent and slice the requested page."""
        now = self.clock()

        if self._is_same_window(term, parent, page, page_size):
            entry = parent.model_copy(update={"term": term, "created_at": now})
            page_slice = page_from_store(parent.snapshot, parent.total_count, page, page_size)
            return entry, page_slice

        filtered: List[SummaryT] = [item for item in parent.snapshot if matches(item, term)]
        entry = self.entry_model(
            term=term,
            snapshot=filtered,
            created_at=now,
            source=SnapshotSource.DERIVED,
        )
        return entry, paginate(filtered, page, page_size)

    @staticmethod
    def _is_same_window(term: str, parent: SearchCacheEntry, page: int, page_size: int) -> bool:
        return (
            parent.source == SnapshotSource.CATALOG
            and parent.term.casefold() == term.casefold()
            and parent.page == page
            and parent.page_size == page_size
            and parent.total_count is not None
        )

    async def _load_entries(self, key: str):
        """Return ``(entries, readable)``; missing, unreachable and corrupt maps all read as empty."""
        raw, readable = await self._read(key)
        if raw is None:
            return {}, readable

        try:
            return decode_entries(raw, self.entry_model), True
        except CacheCorruptError as e:
            self._report_corrupt(key, e.details.get("error", e.message))
            return {}, True

    async def _store_entries(
        self,
        key: str,
        entries: Dict[str, SearchCacheEntry],
        entry: SearchCacheEntry,
    ) -> None:
        updated = insert_entry(entries, entry.term, entry)
        updated, evicted = enforce_limit(updated, self.policy.max_entries)
        if evicted:
            self.logger.debug("Evicted search cache entries", key=key, evicted=evicted)
            self._count("cache_evictions_total", len(evicted))

        await self._write(key, encode_entries(updated, self.cache_type))

    def _to_result(self, page_slice: PageSlice, from_cache: bool) -> SearchResult[SummaryT]:
        return SearchResult[self.item_model](
            items=page_slice.items,
            total_count=page_slice.total_count,
            page=page_slice.page,
            page_size=page_slice.page_size,
            total_pages=page_slice.total_pages,
            from_cache=from_cache,
        )
