"""
Unit tests for pagination helpers.
"""

import pytest

from shared.errors import ValidationError
from service_inventory.app.caching.pagination import page_from_store, paginate


class TestPaginate:
    """Test cases for paginate."""

    def test_first_page(self):
        page = paginate(list(range(25)), 1, 10)
        assert page.items == list(range(10))
        assert page.total_count == 25
        assert page.total_pages == 3

    def test_last_partial_page(self):
        page = paginate(list(range(25)), 3, 10)
        assert page.items == [20, 21, 22, 23, 24]

    def test_page_past_end_is_empty(self):
        page = paginate(list(range(5)), 4, 10)
        assert page.items == []
        assert page.total_count == 5
        assert page.total_pages == 1

    def test_empty_sequence(self):
        page = paginate([], 1, 10)
        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("page_number,page_size", [(0, 10), (-1, 10), (1, 0), (1, -5)])
    def test_invalid_window_rejected(self, page_number, page_size):
        with pytest.raises(ValidationError):
            paginate([1, 2, 3], page_number, page_size)


class TestPageFromStore:
    """Test cases for page_from_store."""

    def test_keeps_store_total(self):
        page = page_from_store(["x", "y"], 57, 2, 2)
        assert page.items == ["x", "y"]
        assert page.total_count == 57
        assert page.total_pages == 29
