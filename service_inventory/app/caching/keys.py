"""
Cache key derivation.

Keys look like ``inventory:product:searches:tenant-1:user-9`` or, for keyed
lookups, ``inventory:sale:direct:tenant-1:!:%7B%22page%22%3A1%7D``. Every
variable part is percent-encoded and a missing user is written as ``!``
(never produced by the encoder), so distinct inputs can never share a key.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import quote

from ..domain.models import EntityType, TenantScope

NO_USER = "!"

SEARCHES = "searches"
DIRECT = "direct"
QUERIES = "queries"


def _encode(value: str) -> str:
    return quote(value, safe="")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Unsupported cache key parameter: {type(value).__name__}")


class CacheKeyBuilder:
    """Builds namespaced blob store keys per entity type and caller scope."""

    def __init__(self, namespace: str = "inventory"):
        if not namespace:
            raise ValueError("namespace is required")
        self.namespace = _encode(namespace)

    @staticmethod
    def canonical_params(params: Mapping[str, Any]) -> str:
        """Render a parameter tuple as canonical JSON."""
        return json.dumps(dict(params), sort_keys=True, separators=(",", ":"), default=_json_default)

    def _scope_key(self, entity_type: EntityType, kind: str, scope: TenantScope) -> str:
        user = NO_USER if scope.user_id is None else _encode(scope.user_id)
        return ":".join((
            self.namespace,
            EntityType(entity_type).value,
            kind,
            _encode(scope.tenant_id),
            user,
        ))

    def search_map_key(self, entity_type: EntityType, scope: TenantScope) -> str:
        """Key of the term -> entry search map for one scope."""
        return self._scope_key(entity_type, SEARCHES, scope)

    def query_map_key(self, entity_type: EntityType, scope: TenantScope, family: Optional[str] = None) -> str:
        """Key of the parameter tuple -> entry map backing a parameterized cache."""
        key = self._scope_key(entity_type, QUERIES, scope)
        if family:
            key = f"{key}:{_encode(family)}"
        return key

    def direct_key(
        self,
        entity_type: EntityType,
        scope: TenantScope,
        params: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Key for one exact parameter tuple."""
        return f"{self._scope_key(entity_type, DIRECT, scope)}:{_encode(self.canonical_params(params or {}))}"
