"""
Read-only views of cache entry state.
"""

from dataclasses import dataclass
from typing import Any, Optional

from shared.errors import ErrorResponse, FetchError

from ..oracle import VersionMarker


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable picture of one cache entry at a point in time.

    ``value`` is a deep copy; mutating it never touches the cache.
    """

    key: str
    value: Any = None
    last_fetched: Optional[float] = None
    last_modified: Optional[VersionMarker] = None
    stale: bool = False
    loading: bool = False
    expired: bool = True
    error: Optional[FetchError] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None

    def error_response(self) -> Optional[ErrorResponse]:
        """The current error as a serializable payload, if any."""
        return self.error.to_response() if self.error is not None else None
