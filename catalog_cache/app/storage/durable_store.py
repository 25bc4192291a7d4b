"""
Durable key-value store contract and the in-memory implementation.
"""

from typing import Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class DurableStore(Protocol):
    """Byte blobs addressed by string ids.

    Implementations raise ``PersistenceError`` on failure. Reads are
    synchronous so a cache can seed itself during construction; writes are
    coroutines so a slow backend never stalls the event loop. Stores holding
    connections may also provide an ``async close()``.
    """

    def get(self, item_id: str) -> Optional[bytes]:
        ...

    async def set(self, item_id: str, data: bytes) -> None:
        ...


def value_id(cache_key: str) -> str:
    """Store id of the cached payload for ``cache_key``."""
    return f"cache_{cache_key}"


def metadata_id(cache_key: str) -> str:
    """Store id of the ``{lastModified, lastFetched}`` record for ``cache_key``."""
    return f"cache_meta_{cache_key}"


class MemoryStore:
    """Process-local store, used for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._items: Dict[str, bytes] = dict(initial or {})

    def get(self, item_id: str) -> Optional[bytes]:
        return self._items.get(item_id)

    async def set(self, item_id: str, data: bytes) -> None:
        self._items[item_id] = bytes(data)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)
