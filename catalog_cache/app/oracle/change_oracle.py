"""
Change oracle contract and version-marker resolution.

The catalog server exposes one cheap endpoint returning a nested map of
version markers, for example::

    {"prompts": {"lastModified": 1700000000000},
     "gallery": {"static": {"lastModified": 1700000000500}, "gif": 1699999999000}}

A cache entry finds its own marker by walking that map with its dot-separated
key, so every resource shares the same request instead of re-fetching its
payload just to learn whether it changed.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from shared.errors import OracleUnavailable

VersionMarker = Union[int, float, str]
VersionMap = Mapping


@runtime_checkable
class ChangeOracle(Protocol):
    """Anything that can return the current version map."""

    async def fetch_versions(self) -> VersionMap:
        ...


class CallableOracle:
    """Adapts a bare ``async () -> Mapping`` function to the oracle contract."""

    def __init__(self, func: Callable[[], Awaitable[VersionMap]]):
        self._func = func

    async def fetch_versions(self) -> VersionMap:
        return await self._func()


def _is_marker(value: Any) -> bool:
    return isinstance(value, (int, float, str)) and not isinstance(value, bool)


def resolve_marker(versions: Any, key: str) -> Optional[VersionMarker]:
    """Return the marker for ``key`` or ``None`` when the map has no entry.

    Raises ``OracleUnavailable`` when the map itself, or the node found at the
    end of the path, has an unusable shape.
    """
    if not isinstance(versions, Mapping):
        raise OracleUnavailable(
            "Version map is not a mapping",
            details={"cache_key": key, "type": type(versions).__name__},
        )

    node: Any = versions
    for segment in key.split("."):
        if not isinstance(node, Mapping) or node.get(segment) is None:
            return None
        node = node[segment]

    if isinstance(node, Mapping):
        node = node.get("lastModified")
        if node is None:
            return None

    if not _is_marker(node):
        raise OracleUnavailable(
            "Version marker is not a scalar",
            details={"cache_key": key, "type": type(node).__name__},
        )
    return node


def is_newer(current: Optional[VersionMarker], baseline: Optional[VersionMarker]) -> bool:
    """Strict ``current > baseline``; missing information on either side is not newer."""
    if current is None or baseline is None:
        return False
    try:
        return current > baseline
    except TypeError as exc:
        raise OracleUnavailable(
            "Version markers are not comparable",
            details={"current": repr(current), "baseline": repr(baseline)},
        ) from exc


class CoalescingOracle:
    """Shares one in-flight ``fetch_versions`` call between concurrent callers.

    Entries mounting together, or a registry-wide refresh, would otherwise
    issue one metadata request per key.
    """

    def __init__(self, inner: ChangeOracle):
        self._inner = inner
        self._pending: Optional[asyncio.Future] = None

    @property
    def inner(self) -> ChangeOracle:
        return self._inner

    async def fetch_versions(self) -> VersionMap:
        if self._pending is None:
            self._start()
        return await asyncio.shield(self._pending)

    async def fetch_fresh_versions(self) -> VersionMap:
        """Start a new request even if one is in flight.

        Used after a payload fetch: an in-flight request may have read the
        version map before the payload changed. Later ``fetch_versions``
        callers share the new request.
        """
        return await asyncio.shield(self._start())

    def _start(self) -> asyncio.Future:
        self._pending = asyncio.ensure_future(self._inner.fetch_versions())
        self._pending.add_done_callback(self._clear)
        return self._pending

    def _clear(self, future: asyncio.Future) -> None:
        if self._pending is future:
            self._pending = None
        if not future.cancelled():
            # Mark the exception retrieved; every waiter re-raises it itself
            future.exception()
