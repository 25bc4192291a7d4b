"""
Shared configuration management for the catalog cache.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheConfig(BaseSettings):
    """Cache settings, overridable through ``CATALOG_CACHE_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Catalog server
    api_base_url: str = "http://localhost:3001"
    metadata_path: str = "/api/metadata"
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    # Freshness
    stale_time_seconds: float = Field(default=30.0, gt=0)
    persist_debounce_seconds: float = Field(default=0.5, ge=0)

    # Durable store
    store_backend: Literal["memory", "file", "redis"] = "file"
    store_path: str = ".catalog_cache"
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "catalog_cache:"

    # Change oracle protection
    oracle_failure_threshold: int = Field(default=3, ge=1)
    oracle_recovery_timeout_seconds: float = Field(default=30.0, ge=0)

    @property
    def metadata_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.metadata_path}"

