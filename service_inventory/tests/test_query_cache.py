"""
Unit tests for the two-tier parameterized query cache.
"""

import pytest

from service_inventory.app.caching.payloads import decode_entries
from service_inventory.app.caching.policies import CachePolicy
from service_inventory.app.caching.query_cache import ParameterizedQueryCache
from service_inventory.app.domain.models import EntityType, SearchResult, StockSummary, TenantScope

from conftest import FlakyBlobStore


def stock_page(page: int, *quantities: int) -> SearchResult[StockSummary]:
    items = [StockSummary(id=f"st{page}-{i}", product_id="p1", quantity=q) for i, q in enumerate(quantities)]
    return SearchResult[StockSummary](
        items=items,
        total_count=len(items),
        page=page,
        page_size=10,
        total_pages=1,
    )


class CountingFetch:
    """Returns a fixed page per parameter tuple and counts catalog round trips."""

    def __init__(self):
        self.calls = []

    def __call__(self, params):
        async def fetch():
            self.calls.append(dict(params))
            return stock_page(params["page"], params["page"] * 10)

        return fetch


@pytest.fixture
def make_cache(keys, clock):
    def _make(store, **kwargs):
        kwargs.setdefault("clock", clock)
        return ParameterizedQueryCache(
            SearchResult[StockSummary],
            EntityType.STOCK,
            kwargs.pop("policy", CachePolicy(sliding_ttl_seconds=60, max_entries=3)),
            store,
            keys,
            family=kwargs.pop("family", "low_stock"),
            **kwargs,
        )

    return _make


@pytest.fixture
def fetcher():
    return CountingFetch()


class TestParameterizedQueryCache:
    """Test cases for ParameterizedQueryCache."""

    @pytest.mark.asyncio
    async def test_repeat_is_served_from_fast_path(self, make_cache, blob_store, scope, fetcher):
        cache = make_cache(blob_store)
        params = {"page": 1}

        first, first_cached = await cache.get_or_fetch(scope, params, fetcher(params))
        second, second_cached = await cache.get_or_fetch(scope, params, fetcher(params))

        assert first_cached is False
        assert second_cached is True
        assert second == first
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_earlier_tuple_served_from_map_after_direct_key_expires(
        self, make_cache, blob_store, clock, scope, fetcher
    ):
        """Test A, then B 40s later, then A 30s after that: A's direct key is gone but the map still has it."""
        cache = make_cache(blob_store)
        page_a = {"page": 1}
        page_b = {"page": 2}

        await cache.get_or_fetch(scope, page_a, fetcher(page_a))
        clock.advance(40)
        await cache.get_or_fetch(scope, page_b, fetcher(page_b))
        clock.advance(30)

        direct_a, _, _ = cache._keys_for(scope, page_a)
        assert await blob_store.get(direct_a) is None

        value, from_cache = await cache.get_or_fetch(scope, page_a, fetcher(page_a))

        assert from_cache is True
        assert value.page == 1
        assert len(fetcher.calls) == 2
        # map hits re-promote the tuple to the fast path
        assert await blob_store.get(direct_a) is not None

    @pytest.mark.asyncio
    async def test_map_is_bounded(self, make_cache, blob_store, clock, scope, fetcher):
        cache = make_cache(blob_store)
        for page in range(1, 6):
            params = {"page": page}
            await cache.get_or_fetch(scope, params, fetcher(params))
            clock.advance(1)

        _, map_key, _ = cache._keys_for(scope, {"page": 1})
        entries = decode_entries(await blob_store.get(map_key), cache.entry_model)

        assert list(entries) == ['{"page":3}', '{"page":4}', '{"page":5}']

    @pytest.mark.asyncio
    async def test_families_do_not_share_keys(self, make_cache, blob_store, scope, fetcher):
        by_product = make_cache(blob_store, family="product")
        by_stock = make_cache(blob_store, family="stock")
        params = {"id": "p1", "page": 1}

        await by_product.get_or_fetch(scope, params, fetcher(params))
        _, from_cache = await by_stock.get_or_fetch(scope, params, fetcher(params))

        assert from_cache is False
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_scopes_are_isolated(self, make_cache, blob_store, fetcher):
        cache = make_cache(blob_store)
        params = {"page": 1}

        await cache.get_or_fetch(TenantScope("tenant-1", "user-1"), params, fetcher(params))
        _, from_cache = await cache.get_or_fetch(TenantScope("tenant-2", "user-1"), params, fetcher(params))

        assert from_cache is False

    @pytest.mark.asyncio
    async def test_unreadable_map_is_not_overwritten(self, make_cache, scope, fetcher):
        store = FlakyBlobStore(fail_reads=True)
        cache = make_cache(store)
        params = {"page": 1}

        value, from_cache = await cache.get_or_fetch(scope, params, fetcher(params))

        assert from_cache is False
        assert value.page == 1
        # only the direct key is written
        assert store.writes == 1

    @pytest.mark.asyncio
    async def test_corrupt_map_is_replaced(self, make_cache, blob_store, scope, fetcher):
        cache = make_cache(blob_store)
        params = {"page": 1}
        _, map_key, tuple_key = cache._keys_for(scope, params)
        await blob_store.set(map_key, b"[]", 60)

        await cache.get_or_fetch(scope, params, fetcher(params))

        entries = decode_entries(await blob_store.get(map_key), cache.entry_model)
        assert list(entries) == [tuple_key]
