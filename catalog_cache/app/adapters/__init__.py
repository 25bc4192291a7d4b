"""
Adapters package for the catalog cache.

Contains the HTTP client for the catalog server's read endpoints and the
table of standard catalog resources. Adapters encapsulate:

- Base URLs and endpoint paths
- Retry policies and circuit breakers
- Error handling that maps to shared errors
"""

from .catalog_client import CatalogClient
from .resources import CATALOG_RESOURCES, CatalogResource, register_catalog

__all__ = [
    "CatalogClient",
    "CatalogResource",
    "CATALOG_RESOURCES",
    "register_catalog",
]
