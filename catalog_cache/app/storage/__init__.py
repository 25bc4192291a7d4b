"""
Durable storage package for the catalog cache.

Backends implement the two-method ``DurableStore`` contract (``get``/``set``
of byte blobs by id). The backend is chosen from ``CacheConfig.store_backend``.
"""

from shared.config import CacheConfig

from .durable_store import DurableStore, MemoryStore, metadata_id, value_id
from .file_store import FileStore
from .redis_store import RedisStore


def build_store(config: CacheConfig) -> DurableStore:
    """Create the durable store selected by ``config``."""
    if config.store_backend == "memory":
        return MemoryStore()
    if config.store_backend == "redis":
        return RedisStore(config.redis_url, prefix=config.redis_prefix)
    return FileStore(config.store_path)


__all__ = [
    "DurableStore",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "build_store",
    "value_id",
    "metadata_id",
]
