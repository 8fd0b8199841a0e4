"""
Blob store and catalog access shared by the cache engines.

Cache reads and writes never fail a request: unreachable stores, timeouts and
undecodable payloads are logged and reported as misses. Catalog failures are
the opposite and always surface as CatalogStoreError.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Tuple, TypeVar

from shared.errors import CacheUnavailableError, CatalogStoreError, InventoryServiceException
from shared.logging import get_logger

from ..domain.models import EntityType
from .blob_store import BlobStore
from .keys import CacheKeyBuilder
from .policies import CachePolicy

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector

ResultT = TypeVar("ResultT")

DEFAULT_CACHE_TIMEOUT_SECONDS = 0.5
DEFAULT_CATALOG_TIMEOUT_SECONDS = 10.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheComponent:
    """Common plumbing for one entity type's cache."""

    def __init__(
        self,
        entity_type: EntityType,
        policy: CachePolicy,
        blob_store: BlobStore,
        keys: Optional[CacheKeyBuilder] = None,
        *,
        metrics: Optional["MetricsCollector"] = None,
        cache_timeout: float = DEFAULT_CACHE_TIMEOUT_SECONDS,
        catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        logger_name: str = "inventory.cache",
    ):
        self.entity_type = EntityType(entity_type)
        self.policy = policy
        self.blob_store = blob_store
        self.keys = keys or CacheKeyBuilder()
        self.metrics = metrics
        self.cache_timeout = cache_timeout
        self.catalog_timeout = catalog_timeout
        self.clock = clock
        self.logger = get_logger(logger_name)

    @property
    def cache_type(self) -> str:
        return self.entity_type.value

    def _count(self, metric_name: str, amount: float = 1, **labels: Any) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, amount, cache_type=self.cache_type, **labels)

    async def _read(self, key: str) -> Tuple[Optional[bytes], bool]:
        """Return ``(payload, reachable)``; the sliding window restarts on every read."""
        try:
            payload = await asyncio.wait_for(
                self.blob_store.get(key, self.policy.sliding_ttl_seconds),
                timeout=self.cache_timeout,
            )
            return payload, True
        except asyncio.TimeoutError:
            self._report_unavailable("Cache read timed out", key, "timeout")
        except CacheUnavailableError as e:
            self._report_unavailable("Cache read failed", key, "unavailable", e.details.get("error"))
        except Exception as e:
            self._report_unavailable("Cache read failed", key, "unavailable", str(e))
        return None, False

    async def _write(self, key: str, payload: bytes) -> bool:
        try:
            await asyncio.wait_for(
                self.blob_store.set(key, payload, self.policy.sliding_ttl_seconds),
                timeout=self.cache_timeout,
            )
            return True
        except asyncio.TimeoutError:
            self._report_unavailable("Cache write timed out", key, "timeout")
        except CacheUnavailableError as e:
            self._report_unavailable("Cache write failed", key, "unavailable", e.details.get("error"))
        except Exception as e:
            self._report_unavailable("Cache write failed", key, "unavailable", str(e))
        return False

    def _report_unavailable(self, event: str, key: str, reason: str, error: Optional[str] = None) -> None:
        self.logger.warning(event, key=key, entity_type=self.cache_type, reason=reason, error=error)
        self._count("cache_errors_total", reason=reason)

    def _report_corrupt(self, key: str, error: str) -> None:
        self.logger.warning("Cache payload corrupt, treating as miss", key=key, entity_type=self.cache_type, error=error)
        self._count("cache_errors_total", reason="corrupt")

    async def _call_catalog(self, operation: str, fetch: Callable[[], Awaitable[ResultT]]) -> ResultT:
        """Run one catalog call under the catalog timeout."""
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(fetch(), timeout=self.catalog_timeout)
        except asyncio.TimeoutError as e:
            self._record_catalog("timeout", start)
            self.logger.error("Catalog request timed out", operation=operation, entity_type=self.cache_type)
            raise CatalogStoreError(
                "Catalog request timed out",
                {"operation": operation, "timeout_seconds": self.catalog_timeout},
            ) from e
        except InventoryServiceException:
            self._record_catalog("error", start)
            raise
        except Exception as e:
            self._record_catalog("error", start)
            self.logger.error("Catalog request failed", operation=operation, entity_type=self.cache_type, error=str(e))
            raise CatalogStoreError(str(e), {"operation": operation}) from e

        self._record_catalog("ok", start)
        return result

    def _record_catalog(self, status: str, start: float) -> None:
        if self.metrics:
            self.metrics.increment_counter("catalog_requests_total", cache_type=self.cache_type, status=status)
            self.metrics.observe_histogram(
                "catalog_request_duration_seconds",
                time.perf_counter() - start,
                cache_type=self.cache_type,
            )
