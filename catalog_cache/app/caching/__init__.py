"""
Caching package for the catalog cache.

Provides the per-resource cache controller, the registry that owns one
controller per resource key, and the debounced persistence scheduler.
Consumers read immutable ``CacheSnapshot`` objects; only the controller
mutates its state.
"""

from .debounce import Debouncer
from .models import CacheSnapshot
from .registry import CacheRegistry
from .resource_cache import DEFAULT_DEBOUNCE, DEFAULT_STALE_TIME, ResourceCache

__all__ = [
    "CacheRegistry",
    "CacheSnapshot",
    "Debouncer",
    "ResourceCache",
    "DEFAULT_DEBOUNCE",
    "DEFAULT_STALE_TIME",
]
