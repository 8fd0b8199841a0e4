"""
Inventory search service for the retail backend.
"""

from datetime import date
from typing import Dict, Optional

from fastapi import Depends, Header, Query

from shared.base_service import BaseService
from shared.errors import AuthenticationError
from shared.logging import set_user_context

from .adapters.catalog_client import CatalogServiceClient
from .caching.blob_store import create_blob_store
from .caching.keys import CacheKeyBuilder
from .caching.policies import resolve_cache_policies
from .domain.models import SalesSearchQuery, TenantScope
from .search.service import InventorySearchService

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


async def get_scope(
    x_tenant_id: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> TenantScope:
    """Caller scope from the identity headers set by the upstream gateway."""
    if not x_tenant_id or not x_tenant_id.strip():
        raise AuthenticationError("Missing X-Tenant-ID header")
    scope = TenantScope(tenant_id=x_tenant_id.strip(), user_id=x_user_id)
    set_user_context(user_id=scope.user_id, tenant_id=scope.tenant_id)
    return scope


class InventoryService(BaseService):
    """Inventory search service implementation."""

    def __init__(self, search_service: Optional[InventorySearchService] = None, **config_overrides):
        super().__init__("inventory", 8020, **config_overrides)
        self.search_service = search_service or self._build_search_service()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.search_service.close()

        self._setup_search_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.inventory_service = self

    def _build_search_service(self) -> InventorySearchService:
        catalog_client = CatalogServiceClient(
            self.config.catalog_service_url,
            timeout=self.config.catalog_timeout_seconds,
            failure_threshold=self.config.catalog_failure_threshold,
            recovery_timeout=self.config.catalog_recovery_timeout_seconds,
        )
        return InventorySearchService(
            catalog_client,
            create_blob_store(self.config.blob_store_backend, self.config.redis_url),
            policies=resolve_cache_policies(self.config.cache_policy_overrides),
            keys=CacheKeyBuilder(self.config.cache_key_namespace),
            metrics=self.metrics,
            cache_timeout=self.config.cache_timeout_seconds,
            catalog_timeout=self.config.catalog_timeout_seconds,
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Blob store reachability; the service still answers from the catalog without it."""
        reachable = await self.search_service.check_blob_store()
        return {"blob_store": "ok" if reachable else "unavailable"}

    def _setup_search_routes(self):
        """Set up search routes."""
        service = self

        @self.app.get("/api/v1/products/search")
        async def search_products(
            name: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            """Search products by name or description."""
            return await service.search_service.search_products(scope, name, page, page_size)

        @self.app.get("/api/v1/categories/search")
        async def search_categories(
            name: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            return await service.search_service.search_categories(scope, name, page, page_size)

        @self.app.get("/api/v1/promotions/search")
        async def search_promotions(
            name: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            return await service.search_service.search_promotions(scope, name, page, page_size)

        @self.app.get("/api/v1/customers/search")
        async def search_customers(
            term: Optional[str] = Query(default=None),
            document: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            """Search customers by name or document, or look one up by exact document (page 1 only)."""
            return await service.search_service.search_customers(scope, term, document, page, page_size)

        @self.app.get("/api/v1/suppliers/search")
        async def search_suppliers(
            term: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            return await service.search_service.search_suppliers(scope, term, page, page_size)

        @self.app.get("/api/v1/sales/search")
        async def search_sales(
            start_date: Optional[date] = Query(default=None),
            end_date: Optional[date] = Query(default=None),
            customer_id: Optional[str] = Query(default=None),
            user_id: Optional[str] = Query(default=None),
            payment_method_id: Optional[str] = Query(default=None),
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            query = SalesSearchQuery(
                start_date=start_date,
                end_date=end_date,
                customer_id=customer_id,
                user_id=user_id,
                payment_method_id=payment_method_id,
                page=page,
                page_size=page_size,
            )
            return await service.search_service.search_sales(scope, query)

        @self.app.get("/api/v1/stock/low")
        async def low_stock(
            threshold: int = Query(default=10),
            scope: TenantScope = Depends(get_scope),
        ):
            """Stock records at or below the threshold."""
            return await service.search_service.get_low_stock(scope, threshold)

        @self.app.get("/api/v1/stock-movements/product/{product_id}")
        async def movements_by_product(
            product_id: str,
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            return await service.search_service.get_stock_movements_by_product(scope, product_id, page, page_size)

        @self.app.get("/api/v1/stock-movements/stock/{stock_id}")
        async def movements_by_stock(
            stock_id: str,
            page: int = Query(default=1),
            page_size: int = Query(default=DEFAULT_PAGE_SIZE, le=MAX_PAGE_SIZE),
            scope: TenantScope = Depends(get_scope),
        ):
            return await service.search_service.get_stock_movements_by_stock(scope, stock_id, page, page_size)

        @self.app.get("/api/v1/cache/policies")
        async def cache_policies():
            """Effective cache policy per entity type."""
            return {
                entity_type.value: policy.model_dump(by_alias=True)
                for entity_type, policy in service.search_service.policies.items()
            }


def create_app(search_service: Optional[InventorySearchService] = None, **config_overrides):
    """Create FastAPI application."""
    service = InventoryService(search_service, **config_overrides)
    return service.app


if __name__ == "__main__":
    service = InventoryService()
    service.run()
