"""
Shared configuration management for the inventory services.
"""

from typing import Any, Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="INVENTORY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Blob store
    redis_url: str = Field(default="redis://localhost:6379/0")
    blob_store_backend: str = Field(default="redis")
    cache_key_namespace: str = Field(default="inventory")
    cache_timeout_seconds: float = Field(default=0.5)

    # Per entity type overrides, e.g. {"product": {"slidingTtlSeconds": 120, "maxEntries": 10}}
    cache_policy_overrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    # Authoritative catalog
    catalog_service_url: str = Field(default="http://localhost:8090")
    catalog_timeout_seconds: float = Field(default=10.0)
    catalog_failure_threshold: int = Field(default=5)
    catalog_recovery_timeout_seconds: float = Field(default=30.0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides: Any) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
