"""
Shared fixtures for inventory search service tests.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from shared.circuit_breaker import circuit_breaker_manager
from shared.errors import CacheUnavailableError

from service_inventory.app.caching.blob_store import InMemoryBlobStore
from service_inventory.app.caching.keys import CacheKeyBuilder
from service_inventory.app.caching.policies import CachePolicy
from service_inventory.app.caching.search_cache import SearchCacheManager
from service_inventory.app.catalog.matching import matches
from service_inventory.app.domain.models import EntityType, ProductSummary, TenantScope

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _row_matches(row: Dict[str, Any], folded_term: str) -> bool:
    lowered = {key.lower(): value for key, value in row.items()}
    return any(
        folded_term in (lowered.get(field) or "").casefold()
        for field in ("name", "description", "document")
    )


class FakeClock:
    """Wall clock and monotonic clock that only move when told to."""

    def __init__(self, start: datetime = EPOCH):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return (self.now - EPOCH).total_seconds()

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeCatalog:
    """In-memory catalog applying the same containment rule as cached snapshots."""

    def __init__(self, items: List[Any]):
        self.items = list(items)
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    async def search(self, term, scope, page, page_size):
        self.calls.append((term, scope, page, page_size))
        if self.error is not None:
            raise self.error
        matched = [item for item in self.items if not term or matches(item, term)]
        start = (page - 1) * page_size
        return matched[start:start + page_size], len(matched)


class FlakyBlobStore(InMemoryBlobStore):
    """In-memory blob store that can be told to fail reads and/or writes."""

    def __init__(self, clock=time.monotonic, fail_reads: bool = False, fail_writes: bool = False):
        super().__init__(clock=clock)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.reads = 0
        self.writes = 0

    async def get(self, key, sliding_ttl=None):
        self.reads += 1
        if self.fail_reads:
            raise CacheUnavailableError("connection refused", {"key": key, "error": "connection refused"})
        return await super().get(key, sliding_ttl)

    async def set(self, key, value, sliding_ttl):
        self.writes += 1
        if self.fail_writes:
            raise CacheUnavailableError("connection refused", {"key": key, "error": "connection refused"})
        await super().set(key, value, sliding_ttl)


class SlowBlobStore(InMemoryBlobStore):
    """Blob store whose reads never answer within any sane timeout."""

    async def get(self, key, sliding_ttl=None):
        await asyncio.sleep(5)
        return await super().get(key, sliding_ttl)


class FakeCatalogClient:
    """Stand-in for CatalogServiceClient returning raw rows like the data service does."""

    def __init__(self):
        self.rows: Dict[EntityType, List[Dict[str, Any]]] = {}
        self.customers_by_document: Dict[str, Dict[str, Any]] = {}
        self.low_stock_rows: List[Dict[str, Any]] = []
        self.movement_rows: Dict[tuple, List[Dict[str, Any]]] = {}
        self.sales_rows: List[Dict[str, Any]] = []
        self.sales_total_amount = Decimal("0")
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None

    def _check(self):
        if self.error is not None:
            raise self.error

    async def search(self, entity_type, term, scope, page, page_size):
        self.calls.append(("search", EntityType(entity_type), term, scope, page, page_size))
        self._check()
        rows = self.rows.get(EntityType(entity_type), [])
        if term:
            folded = term.casefold()
            rows = [row for row in rows if _row_matches(row, folded)]
        start = (page - 1) * page_size
        return rows[start:start + page_size], len(rows)

    async def get_customer_by_document(self, scope, document):
        self.calls.append(("customer_by_document", scope, document))
        self._check()
        return self.customers_by_document.get(document)

    async def get_low_stock(self, scope, threshold):
        self.calls.append(("low_stock", scope, threshold))
        self._check()
        rows = [row for row in self.low_stock_rows if row["quantity"] <= threshold]
        return rows, len(rows)

    async def get_stock_movements(self, scope, by, target_id, page, page_size):
        self.calls.append(("movements", scope, by, target_id, page, page_size))
        self._check()
        rows = self.movement_rows.get((by, target_id), [])
        start = (page - 1) * page_size
        return rows[start:start + page_size], len(rows)

    async def search_sales(self, scope, query):
        self.calls.append(("sales", scope, query))
        self._check()
        return list(self.sales_rows), len(self.sales_rows), self.sales_total_amount

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


def product(name: str, description: Optional[str] = None, **extra) -> ProductSummary:
    return ProductSummary(id=name.lower().replace(" ", "-"), name=name, description=description, **extra)


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Circuit breakers are process-global; start every test closed."""
    circuit_breaker_manager.circuit_breakers.clear()
    yield
    circuit_breaker_manager.circuit_breakers.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blob_store(clock):
    return InMemoryBlobStore(clock=clock.monotonic)


@pytest.fixture
def keys():
    return CacheKeyBuilder("inventory")


@pytest.fixture
def scope():
    return TenantScope(tenant_id="tenant-1", user_id="user-1")


@pytest.fixture
def products():
    return [
        product("Laptop", "15 inch business laptop"),
        product("Lapdesk", "Foam lap desk"),
        product("Mouse", "Wireless mouse"),
        product("Monitor", "27 inch display"),
        product("Café Especial", "Ground coffee"),
    ]


@pytest.fixture
def catalog(products):
    return FakeCatalog(products)


@pytest.fixture
def product_policy():
    return CachePolicy(sliding_ttl_seconds=60, max_entries=5)


@pytest.fixture
def make_manager(catalog, product_policy, keys, clock):
    """Factory for product search managers over a chosen blob store."""

    def _make(store, **kwargs):
        kwargs.setdefault("clock", clock)
        return SearchCacheManager(
            ProductSummary,
            kwargs.pop("catalog", catalog),
            EntityType.PRODUCT,
            kwargs.pop("policy", product_policy),
            store,
            keys,
            **kwargs,
        )

    return _make


@pytest.fixture
def manager(make_manager, blob_store):
    return make_manager(blob_store)


@pytest.fixture
def fake_client():
    client = FakeCatalogClient()
    client.rows[EntityType.PRODUCT] = [
        {"Id": "p1", "Name": "Laptop", "Description": "15 inch business laptop", "Price": "999.90", "SKU": "LP-1"},
        {"Id": "p2", "Name": "Lapdesk", "Description": "Foam lap desk", "Price": "49.90", "SKU": "LD-1"},
        {"Id": "p3", "Name": "Mouse", "Description": "Wireless mouse", "Price": "19.90", "SKU": "MS-1"},
    ]
    client.rows[EntityType.CUSTOMER] = [
        {"id": "c1", "name": "Ana Souza", "document": "12345678900", "email": "ana@example.com"},
        {"id": "c2", "name": "Bruno Lima", "document": "98765432100"},
    ]
    client.rows[EntityType.CATEGORY] = [{"id": "cat1", "name": "Electronics"}]
    client.rows[EntityType.PROMOTION] = [{"id": "pr1", "name": "Black Friday", "discountPercentage": 20}]
    client.rows[EntityType.SUPPLIER] = [
        {"id": "s1", "name": "Acme Distribution", "document": "11222333000181"},
        {"id": "s2", "name": "Globex Supplies", "document": "44555666000199"},
    ]
    client.customers_by_document["12345678900"] = client.rows[EntityType.CUSTOMER][0]
    client.low_stock_rows = [
        {"id": "st1", "productId": "p1", "quantity": 2},
        {"id": "st2", "productId": "p2", "quantity": 8},
        {"id": "st3", "productId": "p3", "quantity": 40},
    ]
    client.movement_rows[("product", "p1")] = [
        {"id": f"m{i}", "stockId": "st1", "movementType": "OUT", "quantity": i} for i in range(1, 4)
    ]
    client.movement_rows[("stock", "p1")] = [
        {"id": "odd", "stockId": "p1", "movementType": "IN", "quantity": 99}
    ]
    client.sales_rows = [{"id": "sale-1", "userId": "user-1", "total": "120.50"}]
    client.sales_total_amount = Decimal("120.50")
    return client
