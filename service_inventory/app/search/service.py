"""
Inventory search service: wires one cache per entity type in front of the catalog.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel

from shared.errors import ValidationError
from shared.logging import get_logger

from ..adapters.catalog_client import CatalogServiceClient
from ..caching.base import DEFAULT_CACHE_TIMEOUT_SECONDS, DEFAULT_CATALOG_TIMEOUT_SECONDS, utc_now
from ..caching.blob_store import BlobStore
from ..caching.direct_cache import DirectCache
from ..caching.keys import CacheKeyBuilder
from ..caching.pagination import validate_page_request
from ..caching.policies import CachePolicy, DEFAULT_CACHE_POLICIES
from ..caching.query_cache import ParameterizedQueryCache
from ..caching.search_cache import SearchCacheManager
from ..catalog.matching import is_blank, normalize_term
from ..catalog.store import EntityCatalog
from ..domain.models import (
    CategorySummary,
    CustomerSummary,
    EntityType,
    ProductSummary,
    PromotionSummary,
    SaleSearchResult,
    SaleSummary,
    SalesSearchQuery,
    SearchResult,
    StockMovementSummary,
    StockSummary,
    SupplierSummary,
    TenantScope,
    total_pages_for,
)

TERM_SEARCH_MODELS: Dict[EntityType, Type[BaseModel]] = {
    EntityType.CATEGORY: CategorySummary,
    EntityType.CUSTOMER: CustomerSummary,
    EntityType.PRODUCT: ProductSummary,
    EntityType.PROMOTION: PromotionSummary,
}


def build_page(
    model: Type[BaseModel],
    rows: Sequence[Any],
    total_count: int,
    page: int,
    page_size: int,
) -> SearchResult:
    return SearchResult[model](
        items=[model.model_validate(row) for row in rows],
        total_count=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages_for(total_count, page_size),
    )


def _mark(result: SearchResult, from_cache: bool) -> SearchResult:
    return result.model_copy(update={"from_cache": from_cache})


class InventorySearchService:
    """Entry point used by the HTTP routes for every cached search and lookup."""

    def __init__(
        self,
        catalog_client: CatalogServiceClient,
        blob_store: BlobStore,
        *,
        policies: Optional[Mapping[EntityType, CachePolicy]] = None,
        keys: Optional[CacheKeyBuilder] = None,
        metrics=None,
        cache_timeout: float = DEFAULT_CACHE_TIMEOUT_SECONDS,
        catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.catalog_client = catalog_client
        self.blob_store = blob_store
        self.policies = dict(policies or DEFAULT_CACHE_POLICIES)
        self.keys = keys or CacheKeyBuilder()
        self.logger = get_logger("inventory.search_service")

        self._options: Dict[str, Any] = {
            "metrics": metrics,
            "cache_timeout": cache_timeout,
            "catalog_timeout": catalog_timeout,
            "clock": clock,
        }

        self.term_searches: Dict[EntityType, SearchCacheManager] = {
            entity_type: SearchCacheManager(
                model,
                EntityCatalog(catalog_client, entity_type, model),
                entity_type,
                self.policies[entity_type],
                blob_store,
                self.keys,
                **self._options,
            )
            for entity_type, model in TERM_SEARCH_MODELS.items()
        }
        self.listings: Dict[EntityType, DirectCache] = {
            entity_type: self._direct(SearchResult[model], entity_type)
            for entity_type, model in TERM_SEARCH_MODELS.items()
        }
        self.customer_documents = self._direct(CustomerSummary, EntityType.CUSTOMER)
        self.supplier_searches = self._direct(SearchResult[SupplierSummary], EntityType.SUPPLIER)
        self.sales_searches = self._direct(SaleSearchResult, EntityType.SALE)

        self.low_stock = self._query(SearchResult[StockSummary], EntityType.STOCK, "low_stock")
        self.movements_by_product = self._query(
            SearchResult[StockMovementSummary], EntityType.STOCK_MOVEMENT, "product"
        )
        self.movements_by_stock = self._query(
            SearchResult[StockMovementSummary], EntityType.STOCK_MOVEMENT, "stock"
        )

    def _direct(self, payload_model: Type[BaseModel], entity_type: EntityType) -> DirectCache:
        return DirectCache(
            payload_model,
            entity_type,
            self.policies[entity_type],
            self.blob_store,
            self.keys,
            **self._options,
        )

    def _query(self, payload_model: Type[BaseModel], entity_type: EntityType, family: str) -> ParameterizedQueryCache:
        return ParameterizedQueryCache(
            payload_model,
            entity_type,
            self.policies[entity_type],
            self.blob_store,
            self.keys,
            family=family,
            **self._options,
        )

    async def search(
        self,
        entity_type: EntityType,
        scope: TenantScope,
        term: Optional[str],
        page: int,
        page_size: int,
    ) -> SearchResult:
        """Term search with prefix reuse; a blank term becomes a cached unfiltered listing."""
        entity_type = EntityType(entity_type)
        if entity_type not in self.term_searches:
            raise ValidationError(f"Term search is not supported for {entity_type.value}")
        validate_page_request(page, page_size)

        if is_blank(term):
            return await self._listing(entity_type, scope, page, page_size)
        return await self.term_searches[entity_type].resolve(term, page, page_size, scope)

    async def search_products(self, scope: TenantScope, name: Optional[str], page: int, page_size: int) -> SearchResult:
        return await self.search(EntityType.PRODUCT, scope, name, page, page_size)

    async def search_categories(self, scope: TenantScope, name: Optional[str], page: int, page_size: int) -> SearchResult:
        return await self.search(EntityType.CATEGORY, scope, name, page, page_size)

    async def search_promotions(self, scope: TenantScope, name: Optional[str], page: int, page_size: int) -> SearchResult:
        return await self.search(EntityType.PROMOTION, scope, name, page, page_size)

    async def search_customers(
        self,
        scope: TenantScope,
        term: Optional[str],
        document: Optional[str],
        page: int,
        page_size: int,
    ) -> SearchResult:
        """Customers by exact document when one is given, otherwise by term or as a listing.

        A document lookup yields at most one customer, so it only answers page 1.
        """
        validate_page_request(page, page_size)
        if not is_blank(document):
            if page != 1:
                raise ValidationError("page must be 1 for document lookups", {"page": page})
            return await self._customer_by_document(scope, document.strip(), page_size)
        return await self.search(EntityType.CUSTOMER, scope, term, page, page_size)

    async def _listing(self, entity_type: EntityType, scope: TenantScope, page: int, page_size: int) -> SearchResult:
        tenant_scope = scope.tenant_only()
        model = TERM_SEARCH_MODELS[entity_type]
        key = self.keys.direct_key(entity_type, tenant_scope, {"listing": True, "page": page, "page_size": page_size})

        async def fetch() -> SearchResult:
            rows, total = await self.catalog_client.search(entity_type, None, tenant_scope, page, page_size)
            return build_page(model, rows, total, page, page_size)

        result, from_cache = await self.listings[entity_type].get_or_fetch(key, fetch)
        return _mark(result, from_cache)

    async def _customer_by_document(self, scope: TenantScope, document: str, page_size: int) -> SearchResult:
        tenant_scope = scope.tenant_only()
        key = self.keys.direct_key(EntityType.CUSTOMER, tenant_scope, {"document": document})

        async def fetch() -> Optional[CustomerSummary]:
            row = await self.catalog_client.get_customer_by_document(tenant_scope, document)
            return CustomerSummary.model_validate(row) if row is not None else None

        customer, from_cache = await self.customer_documents.get_or_fetch(key, fetch)
        items: List[CustomerSummary] = [customer] if customer is not None else []
        return SearchResult[CustomerSummary](
            items=items,
            total_count=len(items),
            page=1,
            page_size=page_size,
            total_pages=total_pages_for(len(items), page_size),
            from_cache=from_cache,
        )

    async def search_suppliers(
        self,
        scope: TenantScope,
        term: Optional[str],
        page: int,
        page_size: int,
    ) -> SearchResult:
        validate_page_request(page, page_size)
        tenant_scope = scope.tenant_only()
        term = normalize_term(term).strip()
        key = self.keys.direct_key(
            EntityType.SUPPLIER, tenant_scope, {"term": term, "page": page, "page_size": page_size}
        )

        async def fetch() -> SearchResult:
            rows, total = await self.catalog_client.search(EntityType.SUPPLIER, term, tenant_scope, page, page_size)
            return build_page(SupplierSummary, rows, total, page, page_size)

        result, from_cache = await self.supplier_searches.get_or_fetch(key, fetch)
        return _mark(result, from_cache)

    async def search_sales(self, scope: TenantScope, query: SalesSearchQuery) -> SaleSearchResult:
        validate_page_request(query.page, query.page_size)
        if query.start_date and query.end_date and query.start_date > query.end_date:
            raise ValidationError("start_date must not be after end_date")

        tenant_scope = scope.tenant_only()
        key = self.keys.direct_key(EntityType.SALE, tenant_scope, query.cache_params())

        async def fetch() -> SaleSearchResult:
            rows, total, total_amount = await self.catalog_client.search_sales(tenant_scope, query)
            return SaleSearchResult(
                items=[SaleSummary.model_validate(row) for row in rows],
                total_count=total,
                page=query.page,
                page_size=query.page_size,
                total_pages=total_pages_for(total, query.page_size),
                total_amount=total_amount,
            )

        result, from_cache = await self.sales_searches.get_or_fetch(key, fetch)
        return _mark(result, from_cache)

    async def get_low_stock(self, scope: TenantScope, threshold: int) -> SearchResult:
        """Stock records at or under ``threshold``, returned as a single page."""
        if threshold < 0:
            raise ValidationError("threshold must not be negative", {"threshold": threshold})

        async def fetch() -> SearchResult:
            rows, total = await self.catalog_client.get_low_stock(scope, threshold)
            return build_page(StockSummary, rows, total, 1, max(len(rows), 1))

        result, from_cache = await self.low_stock.get_or_fetch(scope, {"threshold": threshold}, fetch)
        return _mark(result, from_cache)

    async def get_stock_movements_by_product(
        self,
        scope: TenantScope,
        product_id: str,
        page: int,
        page_size: int,
    ) -> SearchResult:
        return await self._movements(self.movements_by_product, "product", scope, product_id, page, page_size)

    async def get_stock_movements_by_stock(
        self,
        scope: TenantScope,
        stock_id: str,
        page: int,
        page_size: int,
    ) -> SearchResult:
        return await self._movements(self.movements_by_stock, "stock", scope, stock_id, page, page_size)

    async def _movements(
        self,
        cache: ParameterizedQueryCache,
        by: str,
        scope: TenantScope,
        target_id: str,
        page: int,
        page_size: int,
    ) -> SearchResult:
        validate_page_request(page, page_size)
        if is_blank(target_id):
            raise ValidationError(f"{by}_id is required")

        async def fetch() -> SearchResult:
            rows, total = await self.catalog_client.get_stock_movements(scope, by, target_id, page, page_size)
            return build_page(StockMovementSummary, rows, total, page, page_size)

        params = {"id": target_id, "page": page, "page_size": page_size}
        result, from_cache = await cache.get_or_fetch(scope, params, fetch)
        return _mark(result, from_cache)

    async def check_blob_store(self) -> bool:
        return await self.blob_store.ping()

    async def close(self) -> None:
        await self.blob_store.close()
