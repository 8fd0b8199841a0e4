"""
Unit tests for service configuration and cache policies.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from shared.config import get_config
from service_inventory.app.caching.policies import (
    DEFAULT_CACHE_POLICIES,
    CachePolicy,
    resolve_cache_policies,
)
from service_inventory.app.domain.models import EntityType


class TestServiceConfig:
    """Test cases for environment driven configuration."""

    def test_defaults(self):
        config = get_config("inventory", 8020)

        assert config.service_name == "inventory"
        assert config.port == 8020
        assert config.cache_key_namespace == "inventory"
        assert config.cache_timeout_seconds == 0.5
        assert config.cache_policy_overrides == {}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_BLOB_STORE_BACKEND", "memory")
        monkeypatch.setenv("INVENTORY_CATALOG_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv(
            "INVENTORY_CACHE_POLICY_OVERRIDES",
            '{"product": {"slidingTtlSeconds": 120, "maxEntries": 10}}',
        )

        config = get_config("inventory", 8020)

        assert config.blob_store_backend == "memory"
        assert config.catalog_timeout_seconds == 2.5
        assert config.cache_policy_overrides == {"product": {"slidingTtlSeconds": 120, "maxEntries": 10}}

    def test_keyword_overrides_win(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_BLOB_STORE_BACKEND", "memory")

        config = get_config("inventory", 8020, blob_store_backend="redis")

        assert config.blob_store_backend == "redis"


class TestCachePolicies:
    """Test cases for cache policy resolution."""

    def test_defaults_cover_every_entity_type(self):
        assert set(DEFAULT_CACHE_POLICIES) == set(EntityType)
        assert DEFAULT_CACHE_POLICIES[EntityType.PRODUCT].sliding_ttl_seconds == 60
        assert DEFAULT_CACHE_POLICIES[EntityType.SALE].sliding_ttl_seconds == 120
        assert DEFAULT_CACHE_POLICIES[EntityType.CUSTOMER].sliding_ttl_seconds == 900
        assert all(policy.max_entries == 5 for policy in DEFAULT_CACHE_POLICIES.values())

    def test_overrides_merge_onto_defaults(self):
        policies = resolve_cache_policies({
            "Product": {"maxEntries": 10},
            "sale": {"sliding_ttl_seconds": 30},
        })

        assert policies[EntityType.PRODUCT] == CachePolicy(sliding_ttl_seconds=60, max_entries=10)
        assert policies[EntityType.SALE] == CachePolicy(sliding_ttl_seconds=30, max_entries=5)
        assert policies[EntityType.CUSTOMER] == DEFAULT_CACHE_POLICIES[EntityType.CUSTOMER]

    def test_unknown_entity_type_rejected(self):
        with pytest.raises(ValueError):
            resolve_cache_policies({"warehouse": {"maxEntries": 2}})

    @pytest.mark.parametrize("values", [
        {"sliding_ttl_seconds": 0},
        {"sliding_ttl_seconds": 60, "max_entries": 0},
    ])
    def test_invalid_policy_rejected(self, values):
        with pytest.raises(PydanticValidationError):
            CachePolicy(**values)
