"""
Shared utilities for the catalog cache.

This package aggregates the common building blocks used by the cache core,
its storage backends and its HTTP adapters:

- config: Cache configuration via pydantic-settings
- logging: Structured logging with per-operation correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator for HTTP calls
- circuit_breaker: Protection for the polled metadata endpoint

Do not import from catalog_cache into shared/.
"""
