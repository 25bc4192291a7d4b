"""
Change oracle package.

Answers "has this resource changed server-side?" for every cache key from
one shared version map, without fetching any payload.
"""

from .change_oracle import (
    CallableOracle,
    ChangeOracle,
    CoalescingOracle,
    VersionMarker,
    is_newer,
    resolve_marker,
)
from .metadata_client import MetadataClient

__all__ = [
    "ChangeOracle",
    "CallableOracle",
    "CoalescingOracle",
    "MetadataClient",
    "VersionMarker",
    "is_newer",
    "resolve_marker",
]
