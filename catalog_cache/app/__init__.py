"""
Catalog cache application package.

Structure:
- app.caching: ResourceCache, CacheRegistry and debounced persistence.
- app.oracle: Change oracle contract, marker resolution, HTTP metadata client.
- app.storage: Durable store contract and memory/file/Redis backends.
- app.adapters: HTTP catalog client and the standard resource table.
"""

from typing import Optional

from shared.circuit_breaker import get_circuit_breaker
from shared.config import CacheConfig
from shared.metrics import MetricsCollector

from .adapters import CatalogClient
from .caching import CacheRegistry
from .oracle import MetadataClient
from .storage import build_store


def create_registry(config: CacheConfig, metrics: Optional[MetricsCollector] = None) -> CacheRegistry:
    """Wire a registry against the catalog server described by ``config``."""
    oracle = MetadataClient(
        config.api_base_url,
        config.metadata_path,
        timeout=config.request_timeout_seconds,
        circuit_breaker=get_circuit_breaker(
            "catalog_metadata",
            failure_threshold=config.oracle_failure_threshold,
            recovery_timeout=config.oracle_recovery_timeout_seconds,
        ),
    )
    return CacheRegistry(oracle, store=build_store(config), config=config, metrics=metrics)


def create_catalog_client(config: CacheConfig) -> CatalogClient:
    return CatalogClient(config.api_base_url, timeout=config.request_timeout_seconds)
