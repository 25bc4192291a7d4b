"""
Registry of resource caches sharing one oracle, store and configuration.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from shared.config import CacheConfig
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..oracle import ChangeOracle, CoalescingOracle
from ..storage import DurableStore
from .resource_cache import Fetcher, ResourceCache


class CacheRegistry:
    """Owns every ``ResourceCache`` of the application, keyed by resource key.

    Pass one registry to whatever needs cached data instead of keeping
    module-level caches. Entries live as long as the registry.
    """

    def __init__(
        self,
        oracle: ChangeOracle,
        *,
        store: Optional[DurableStore] = None,
        config: Optional[CacheConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or CacheConfig()
        self.oracle = oracle if isinstance(oracle, CoalescingOracle) else CoalescingOracle(oracle)
        self.store = store
        self.metrics = metrics
        self._clock = clock
        self._entries: Dict[str, ResourceCache] = {}
        self.logger = get_logger("catalog_cache.registry")

    def register(self, key: str, fetcher: Fetcher, **options: Any) -> ResourceCache:
        """Return the cache for ``key``, creating it on first use.

        ``options`` are ``ResourceCache`` keyword arguments and override the
        registry defaults. They are ignored when the key already exists.
        """
        existing = self._entries.get(key)
        if existing is not None:
            if options:
                self.logger.debug("Cache already registered; ignoring options", cache_key=key)
            return existing

        settings: Dict[str, Any] = {
            "store": self.store,
            "stale_time": self.config.stale_time_seconds,
            "debounce": self.config.persist_debounce_seconds,
            "clock": self._clock,
            "metrics": self.metrics,
        }
        settings.update(options)

        cache = ResourceCache(key, fetcher, self.oracle, **settings)
        self._entries[key] = cache
        self.logger.info(
            "Registered cache",
            cache_key=key,
            restored=cache.has_value,
            persist=cache.persist,
        )
        return cache

    def get(self, key: str) -> Optional[ResourceCache]:
        return self._entries.get(key)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ResourceCache]:
        return iter(list(self._entries.values()))

    async def attach_all(self) -> None:
        await self._each("attach")

    async def refresh_all(self) -> None:
        await self._each("refresh")

    async def revalidate_all(self) -> None:
        await self._each("revalidate")

    async def close(self) -> None:
        """Detach every entry, flushing pending writes, then close the store."""
        await self._each("detach")

        close_store = getattr(self.store, "close", None)
        if close_store is not None:
            try:
                await close_store()
            except Exception as exc:
                self.logger.error("Failed to close store", error=str(exc))
        self.logger.info("Cache registry closed", entries=len(self._entries))

    async def _each(self, operation: str) -> None:
        caches = list(self._entries.values())
        results = await asyncio.gather(
            *(getattr(cache, operation)() for cache in caches),
            return_exceptions=True,
        )
        for cache, outcome in zip(caches, results):
            if isinstance(outcome, Exception):
                self.logger.error(
                    "Cache operation failed",
                    operation=operation,
                    cache_key=cache.key,
                    error=str(outcome),
                )

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Per-key summary for diagnostics."""
        return {
            key: {
                "has_value": cache.has_value,
                "stale": cache.stale,
                "expired": cache.expired,
                "loading": cache.loading,
                "last_fetched": cache.last_fetched,
                "last_modified": cache.last_modified,
                "error": cache.error.message if cache.error else None,
            }
            for key, cache in self._entries.items()
        }
