"""
HTTP client for the authoritative inventory data service.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from shared.circuit_breaker import CircuitOpenError, get_circuit_breaker
from shared.errors import CatalogStoreError
from shared.logging import get_logger

from ..domain.models import EntityType, SalesSearchQuery, TenantScope

SEARCH_PATHS = {
    EntityType.CATEGORY: "/categories/search",
    EntityType.CUSTOMER: "/customers/search",
    EntityType.PRODUCT: "/products/search",
    EntityType.PROMOTION: "/promotions/search",
    EntityType.SUPPLIER: "/suppliers/search",
}


class CatalogServiceClient:
    """Client for paginated searches and lookups against the catalog service."""

    def __init__(
        self,
        catalog_service_url: str,
        timeout: float = 10.0,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ):
        self.base_url = catalog_service_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("inventory.catalog_client")

        self.circuit_breaker = get_circuit_breaker(
            "catalog_service",
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout
        )

    async def search(
        self,
        entity_type: EntityType,
        term: Optional[str],
        scope: TenantScope,
        page: int,
        page_size: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Run a term search; a blank term lists everything."""
        path = SEARCH_PATHS.get(EntityType(entity_type))
        if path is None:
            raise CatalogStoreError(f"No search endpoint for {entity_type}")

        params = self._scope_params(scope)
        params.update({"page": page, "page_size": page_size})
        if term:
            params["term"] = term

        data = await self._fetch(path, params)
        return self._page_of(data)

    async def get_customer_by_document(self, scope: TenantScope, document: str) -> Optional[Dict[str, Any]]:
        """Exact customer lookup; None when no customer has that document."""
        return await self._fetch(f"/customers/by-document/{quote(document, safe='')}", self._scope_params(scope))

    async def get_low_stock(self, scope: TenantScope, threshold: int) -> Tuple[List[Dict[str, Any]], int]:
        params = self._scope_params(scope)
        params["threshold"] = threshold
        return self._page_of(await self._fetch("/stock/low", params))

    async def get_stock_movements(
        self,
        scope: TenantScope,
        by: str,
        target_id: str,
        page: int,
        page_size: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Movement history for one product or one stock record (``by`` is "product" or "stock")."""
        if by not in ("product", "stock"):
            raise ValueError(f"Unsupported movement lookup: {by}")
        params = self._scope_params(scope)
        params.update({"page": page, "page_size": page_size})
        return self._page_of(await self._fetch(f"/stock-movements/{by}/{quote(target_id, safe='')}", params))

    async def search_sales(
        self,
        scope: TenantScope,
        query: SalesSearchQuery,
    ) -> Tuple[List[Dict[str, Any]], int, Decimal]:
        """Filtered sales page, total count and the summed amount of all matching sales."""
        params = self._scope_params(scope)
        params.update(query.model_dump(exclude_none=True, mode="json"))
        data = await self._fetch("/sales/search", params)
        rows, total = self._page_of(data)
        return rows, total, self._total_amount_of(data)

    @staticmethod
    def _scope_params(scope: TenantScope) -> Dict[str, Any]:
        params: Dict[str, Any] = {"tenant_id": scope.tenant_id}
        if scope.user_id:
            params["user_id"] = scope.user_id
        return params

    @staticmethod
    def _page_of(data: Optional[Any]) -> Tuple[List[Dict[str, Any]], int]:
        if data is None:
            return [], 0
        if isinstance(data, list):
            return data, len(data)
        # Field names arrive in whatever case the data service emits
        lowered = {str(k).replace("_", "").lower(): v for k, v in data.items()}
        items = lowered.get("items") or []
        total = lowered.get("totalcount")
        return items, int(total if total is not None else len(items))

    @staticmethod
    def _total_amount_of(data: Optional[Any]) -> Decimal:
        if not isinstance(data, dict):
            return Decimal("0")
        lowered = {str(k).replace("_", "").lower(): v for k, v in data.items()}
        amount = lowered.get("totalamount")
        return Decimal(str(amount)) if amount is not None else Decimal("0")

    async def _fetch(self, path: str, params: Dict[str, Any]) -> Optional[Any]:
        """Execute a GET with circuit breaker + error handling."""

        async def _request():
            url = f"{self.base_url}{path}"
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)

            if response.status_code == 200:
                self.logger.debug("Catalog response received", url=url, params=params)
                return response.json()

            if response.status_code == 404:
                self.logger.info("Catalog resource not found", url=url, params=params)
                return None

            self.logger.error(
                "Catalog request failed",
                url=url,
                params=params,
                status_code=response.status_code,
                response=response.text
            )
            raise CatalogStoreError(
                f"Unexpected status {response.status_code}",
                details={"status_code": response.status_code, "path": path}
            )

        try:
            return await self.circuit_breaker.call(_request)
        except CatalogStoreError:
            raise
        except CircuitOpenError as exc:
            self.logger.warning("Catalog circuit open", path=path)
            raise CatalogStoreError(str(exc), details={"path": path}) from exc
        except Exception as exc:
            self.logger.error("Catalog service error", error=str(exc), path=path)
            raise CatalogStoreError(str(exc), details={"path": path}) from exc
