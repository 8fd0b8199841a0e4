"""
Per entity type cache policies.
"""

from typing import Any, Dict, Mapping

from pydantic import Field

from ..domain.base import CaseInsensitiveModel
from ..domain.models import EntityType

DEFAULT_MAX_ENTRIES = 5


class CachePolicy(CaseInsensitiveModel):
    """Sliding expiry window and bounded-map size for one entity type."""

    sliding_ttl_seconds: int = Field(gt=0)
    max_entries: int = Field(default=DEFAULT_MAX_ENTRIES, ge=1)


DEFAULT_CACHE_POLICIES: Dict[EntityType, CachePolicy] = {
    EntityType.CATEGORY: CachePolicy(sliding_ttl_seconds=60),
    EntityType.PRODUCT: CachePolicy(sliding_ttl_seconds=60),
    EntityType.PROMOTION: CachePolicy(sliding_ttl_seconds=60),
    EntityType.STOCK: CachePolicy(sliding_ttl_seconds=60),
    EntityType.STOCK_MOVEMENT: CachePolicy(sliding_ttl_seconds=60),
    EntityType.SALE: CachePolicy(sliding_ttl_seconds=120),
    EntityType.CUSTOMER: CachePolicy(sliding_ttl_seconds=900),
    EntityType.SUPPLIER: CachePolicy(sliding_ttl_seconds=900),
}


def resolve_cache_policies(overrides: Mapping[str, Mapping[str, Any]]) -> Dict[EntityType, CachePolicy]:
    """Merge configured overrides, keyed by entity type value, onto the defaults."""
    policies = dict(DEFAULT_CACHE_POLICIES)
    for name, values in (overrides or {}).items():
        entity_type = EntityType(name.lower())
        # Later keys win when the folded names collide
        policies[entity_type] = CachePolicy.model_validate({**policies[entity_type].model_dump(), **values})
    return policies
