"""
Shared error handling for the catalog cache.

Every failure the cache can observe maps onto one of these types. None of
them is allowed to escape a background operation; they are logged, counted,
or surfaced through a cache entry's ``error`` field instead.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error payload handed to the UI layer."""

    code: str
    message: str
    cache_key: Optional[str] = None
    details: Dict[str, Any] = {}


class CatalogCacheException(Exception):
    """Base exception for the catalog cache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def cache_key(self) -> Optional[str]:
        return self.details.get("cache_key")

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            cache_key=self.cache_key,
            details={k: v for k, v in self.details.items() if k != "cache_key"},
        )


class FetchError(CatalogCacheException):
    """The fetcher for a resource failed."""

    def __init__(self, cache_key: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.cause = cause
        detail = message or (str(cause) if cause is not None else "fetch failed")
        super().__init__(
            "FETCH_ERROR",
            f"Failed to load {cache_key}: {detail}",
            {"cache_key": cache_key, "cause": type(cause).__name__ if cause is not None else None},
        )


class OracleUnavailable(CatalogCacheException):
    """The change oracle could not be queried or returned an unusable shape."""

    def __init__(self, message: str = "Change oracle unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("ORACLE_UNAVAILABLE", message, details)


class PersistenceError(CatalogCacheException):
    """Durable store read, write or serialization failure."""

    def __init__(self, message: str = "Persistence failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)


class ExternalServiceError(CatalogCacheException):
    """An HTTP collaborator returned an error or could not be reached."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
