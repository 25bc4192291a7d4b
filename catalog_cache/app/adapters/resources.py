"""
Standard catalog resources and their endpoints.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from ..caching import CacheRegistry, ResourceCache
from .catalog_client import CatalogClient


@dataclass(frozen=True)
class CatalogResource:
    """A cacheable catalog endpoint."""

    key: str
    path: str
    auto_load: bool = True


CATALOG_RESOURCES: Dict[str, CatalogResource] = {
    resource.key: resource
    for resource in (
        CatalogResource("prompts", "/api/prompts"),
        CatalogResource("loras", "/api/loras"),
        CatalogResource("costumes", "/api/costumes"),
        CatalogResource("requests", "/api/requests"),
        # Gallery tabs are loaded on demand when the tab is first opened
        CatalogResource("gallery.static", "/api/gallery/static", auto_load=False),
        CatalogResource("gallery.gif", "/api/gallery/gif", auto_load=False),
        CatalogResource("gallery.story", "/api/gallery/story", auto_load=False),
    )
}


def register_catalog(
    registry: CacheRegistry,
    client: CatalogClient,
    keys: Optional[Iterable[str]] = None,
    **options: Any,
) -> Dict[str, ResourceCache]:
    """Register the standard catalog resources (or the subset in ``keys``).

    Raises ``KeyError`` for an unknown key.
    """
    selected = list(keys) if keys is not None else list(CATALOG_RESOURCES)
    caches: Dict[str, ResourceCache] = {}
    for key in selected:
        resource = CATALOG_RESOURCES[key]
        settings = {"auto_load": resource.auto_load, **options}
        caches[key] = registry.register(key, client.fetcher(resource.path), **settings)
    return caches
