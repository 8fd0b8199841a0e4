"""
Authoritative catalog store interface.
"""

from typing import Generic, List, Optional, Protocol, Tuple, Type, TypeVar

from ..domain.models import EntitySummary, EntityType, TenantScope

SummaryT = TypeVar("SummaryT", bound=EntitySummary)
SummaryT_co = TypeVar("SummaryT_co", bound=EntitySummary, covariant=True)


class CatalogStore(Protocol[SummaryT_co]):
    """Paginated search over one entity type.

    Matches ``term`` with the same case-insensitive containment on name and
    description that cached snapshots are filtered with.
    """

    async def search(
        self,
        term: str,
        scope: TenantScope,
        page: int,
        page_size: int,
    ) -> Tuple[List[SummaryT_co], int]:
        ...


class EntityCatalog(Generic[SummaryT]):
    """Binds the catalog service client to one entity type and item model."""

    def __init__(self, client, entity_type: EntityType, item_model: Type[SummaryT]):
        self.client = client
        self.entity_type = entity_type
        self.item_model = item_model

    async def search(
        self,
        term: Optional[str],
        scope: TenantScope,
        page: int,
        page_size: int,
    ) -> Tuple[List[SummaryT], int]:
        rows, total = await self.client.search(self.entity_type, term, scope, page, page_size)
        return [self.item_model.model_validate(row) for row in rows], total
