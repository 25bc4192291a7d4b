"""
Shared fixtures for catalog cache tests.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest

from catalog_cache.app.storage import MemoryStore


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeOracle:
    """Change oracle returning a settable version map."""

    def __init__(self, versions: Optional[Dict[str, Any]] = None):
        self.versions: Any = versions if versions is not None else {}
        self.error: Optional[Exception] = None
        self.calls = 0

    def set_marker(self, key: str, marker: Any) -> None:
        node = self.versions
        segments = key.split(".")
        for segment in segments[:-1]:
            node = node.setdefault(segment, {})
        node[segments[-1]] = {"lastModified": marker}

    async def fetch_versions(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.versions)


class FakeFetcher:
    """Fetcher returning ``result`` (or raising ``error``) and counting calls."""

    def __init__(self, result: Any = None):
        self.result = result
        self.error: Optional[Exception] = None
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.result)


class GatedFetcher:
    """Fetcher whose calls block until the test releases them one by one."""

    def __init__(self):
        self.gates: List[Tuple[asyncio.Event, Dict[str, Any]]] = []

    async def __call__(self) -> Any:
        gate = (asyncio.Event(), {})
        self.gates.append(gate)
        await gate[0].wait()
        if "error" in gate[1]:
            raise gate[1]["error"]
        return gate[1]["value"]

    def release(self, index: int, value: Any = None, error: Optional[Exception] = None) -> None:
        event, box = self.gates[index]
        if error is not None:
            box["error"] = error
        else:
            box["value"] = value
        event.set()

    async def wait_for_calls(self, count: int) -> None:
        while len(self.gates) < count:
            await asyncio.sleep(0)


class RecordingStore(MemoryStore):
    """Memory store that remembers every write."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        super().__init__(initial)
        self.writes: List[str] = []

    def preload(self, item_id: str, data: bytes) -> None:
        """Seed a blob without recording it as a write."""
        self._items[item_id] = data

    async def set(self, item_id: str, data: bytes) -> None:
        self.writes.append(item_id)
        await super().set(item_id, data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def fetcher():
    return FakeFetcher({"a": 1})


@pytest.fixture
def gated_fetcher():
    return GatedFetcher()


@pytest.fixture
def store():
    return RecordingStore()
