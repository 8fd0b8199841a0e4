"""
Skip/limit slicing over resolved result sets.
"""

from dataclasses import dataclass
from typing import Generic, List, Sequence, TypeVar

from shared.errors import ValidationError

from ..domain.models import total_pages_for

ItemT = TypeVar("ItemT")


@dataclass(frozen=True)
class PageSlice(Generic[ItemT]):
    items: List[ItemT]
    total_count: int
    page: int
    page_size: int
    total_pages: int


def validate_page_request(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be greater than zero", {"page": page})
    if page_size < 1:
        raise ValidationError("page_size must be greater than zero", {"page_size": page_size})


def paginate(sequence: Sequence[ItemT], page: int, page_size: int) -> PageSlice[ItemT]:
    """Slice one page out of a complete result sequence."""
    validate_page_request(page, page_size)
    start = (page - 1) * page_size
    total = len(sequence)
    return PageSlice(
        items=list(sequence[start:start + page_size]),
        total_count=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages_for(total, page_size),
    )


def page_from_store(items: Sequence[ItemT], total_count: int, page: int, page_size: int) -> PageSlice[ItemT]:
    """Wrap a page the catalog already sliced, keeping its reported total."""
    validate_page_request(page, page_size)
    return PageSlice(
        items=list(items),
        total_count=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages_for(total_count, page_size),
    )
