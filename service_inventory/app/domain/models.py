"""
Entity summaries, caller scopes and result models for the inventory search service.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import ConfigDict, Field

from .base import CaseInsensitiveModel


class EntityType(str, Enum):
    """Entity types with their own cache namespaces."""
    CATEGORY = "category"
    CUSTOMER = "customer"
    PRODUCT = "product"
    PROMOTION = "promotion"
    STOCK = "stock"
    STOCK_MOVEMENT = "stock_movement"
    SALE = "sale"
    SUPPLIER = "supplier"


@dataclass(frozen=True)
class TenantScope:
    """Isolation unit for cached results: one tenant, optionally narrowed to one user."""
    tenant_id: str
    user_id: Optional[str] = None

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id is required")
        if self.user_id is not None and not self.user_id.strip():
            object.__setattr__(self, "user_id", None)

    def tenant_only(self) -> "TenantScope":
        """Scope shared by every user of the tenant."""
        return TenantScope(self.tenant_id)


class EntitySummary(CaseInsensitiveModel):
    """Anything searchable by name and optional description."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None

    def search_texts(self) -> Tuple[Optional[str], ...]:
        """Text fields the catalog matches a search term against."""
        return (self.name, self.description)


class CategorySummary(EntitySummary):
    active: bool = True
    created_at: Optional[datetime] = None


class ProductSummary(EntitySummary):
    category_id: Optional[str] = None
    sku: Optional[str] = None
    bar_code: Optional[str] = None
    price: Decimal = Decimal("0")
    cost: Optional[Decimal] = None
    active: bool = True
    created_at: Optional[datetime] = None


class CustomerSummary(EntitySummary):
    document: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    loyalty_points: int = 0
    active: bool = True

    def search_texts(self) -> Tuple[Optional[str], ...]:
        return (self.name, self.description, self.document)


class PromotionSummary(EntitySummary):
    discount_percentage: Decimal = Decimal("0")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True


class SupplierSummary(EntitySummary):
    document: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    is_active: bool = True

    def search_texts(self) -> Tuple[Optional[str], ...]:
        return (self.name, self.description, self.document)


class StockSummary(CaseInsensitiveModel):
    model_config = ConfigDict(extra="allow")

    id: str
    product_id: str
    product_name: Optional[str] = None
    quantity: int = 0
    updated_at: Optional[datetime] = None


class StockMovementSummary(CaseInsensitiveModel):
    model_config = ConfigDict(extra="allow")

    id: str
    stock_id: str
    user_id: Optional[str] = None
    movement_type: str
    quantity: int
    reason: Optional[str] = None
    movement_date: Optional[datetime] = None


class SaleSummary(CaseInsensitiveModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: Optional[str] = None
    customer_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    total: Decimal = Decimal("0")
    sale_date: Optional[datetime] = None


ItemT = TypeVar("ItemT")


class SearchResult(CaseInsensitiveModel, Generic[ItemT]):
    """One page of results plus the flag telling whether the catalog was bypassed."""

    items: List[ItemT] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 1
    total_pages: int = 0
    from_cache: bool = False


class SaleSearchResult(SearchResult[SaleSummary]):
    """Sales page plus the catalog's sum of ``total`` over every matching sale, not just this page."""

    total_amount: Decimal = Decimal("0")


def total_pages_for(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if page_size > 0 else 0


class SalesSearchQuery(CaseInsensitiveModel):
    """Filters accepted by the sales search."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_id: Optional[str] = None
    user_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    page: int = 1
    page_size: int = 10

    def cache_params(self) -> Dict[str, Any]:
        return {
            "start": self.start_date.strftime("%Y%m%d") if self.start_date else None,
            "end": self.end_date.strftime("%Y%m%d") if self.end_date else None,
            "customer": self.customer_id,
            "user": self.user_id,
            "payment_method": self.payment_method_id,
            "page": self.page,
            "page_size": self.page_size,
        }
