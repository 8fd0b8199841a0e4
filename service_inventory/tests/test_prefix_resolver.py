"""
Unit tests for the prefix resolver.
"""

from service_inventory.app.caching.prefix_resolver import find_reusable_entry


class TestFindReusableEntry:
    """Test cases for find_reusable_entry."""

    def test_no_entries(self):
        assert find_reusable_entry("lap", {}) is None

    def test_no_prefix_matches(self):
        assert find_reusable_entry("mouse", {"lap": 1, "key": 2}) is None

    def test_longest_prefix_wins(self):
        """Test the tightest superset is chosen."""
        entries = {"l": 1, "lap": 2, "la": 3}
        assert find_reusable_entry("laptop", entries) == ("lap", 2)

    def test_match_is_case_insensitive(self):
        assert find_reusable_entry("LAPTOP", {"Lap": "x"}) == ("Lap", "x")

    def test_exact_term_matches_itself(self):
        assert find_reusable_entry("lap", {"lap": 1}) == ("lap", 1)

    def test_key_longer_than_term_is_ignored(self):
        assert find_reusable_entry("la", {"lap": 1}) is None

    def test_empty_key_never_matches(self):
        assert find_reusable_entry("lap", {"": 1}) is None

    def test_equal_length_tie_picks_lexicographically_smallest(self):
        """Test ties are deterministic regardless of insertion order."""
        assert find_reusable_entry("lapis", {"lap": 1, "LAP": 2, "Lap": 3}) == ("LAP", 2)
        assert find_reusable_entry("lapis", {"Lap": 3, "lap": 1, "LAP": 2}) == ("LAP", 2)
