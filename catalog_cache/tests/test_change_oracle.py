"""
Unit tests for version-marker resolution and the oracle wrappers.
"""

import asyncio

import pytest

from catalog_cache.app.oracle import (
    CallableOracle,
    ChangeOracle,
    CoalescingOracle,
    is_newer,
    resolve_marker,
)
from shared.errors import OracleUnavailable


VERSIONS = {
    "prompts": {"lastModified": 1700000000000},
    "costumes": {"count": 4},
    "gallery": {
        "static": {"lastModified": 1700000000500},
        "gif": 1699999999000,
        "story": None,
    },
}


class TestResolveMarker:
    """Walking the version map with dot-separated keys."""

    @pytest.mark.parametrize("key, expected", [
        ("prompts", 1700000000000),
        ("gallery.static", 1700000000500),
        ("gallery.gif", 1699999999000),
    ])
    def test_resolves_existing_markers(self, key, expected):
        assert resolve_marker(VERSIONS, key) == expected

    @pytest.mark.parametrize("key", [
        "loras",
        "gallery.video",
        "gallery.story",
        "prompts.deep.path",
        "costumes",
    ])
    def test_missing_entries_resolve_to_none(self, key):
        assert resolve_marker(VERSIONS, key) is None

    @pytest.mark.parametrize("versions", [None, [], "prompts", 42])
    def test_non_mapping_version_map_is_rejected(self, versions):
        with pytest.raises(OracleUnavailable):
            resolve_marker(versions, "prompts")

    @pytest.mark.parametrize("leaf", [[1, 2], True, {"lastModified": [1]}])
    def test_non_scalar_marker_is_rejected(self, leaf):
        with pytest.raises(OracleUnavailable) as exc_info:
            resolve_marker({"prompts": leaf}, "prompts")
        assert exc_info.value.code == "ORACLE_UNAVAILABLE"

    def test_string_markers_are_allowed(self):
        assert resolve_marker({"prompts": {"lastModified": "etag-7"}}, "prompts") == "etag-7"


class TestIsNewer:
    """Strict comparison of markers."""

    def test_strictly_greater_is_newer(self):
        assert is_newer(101, 100) is True
        assert is_newer("b", "a") is True

    @pytest.mark.parametrize("current, baseline", [(100, 100), (99, 100), (None, 100), (100, None), (None, None)])
    def test_not_newer(self, current, baseline):
        assert is_newer(current, baseline) is False

    def test_incomparable_markers_raise(self):
        with pytest.raises(OracleUnavailable):
            is_newer("2024", 100)


class TestCallableOracle:
    """Plain async functions as oracles."""

    @pytest.mark.asyncio
    async def test_wraps_function(self):
        async def versions():
            return {"prompts": {"lastModified": 3}}

        oracle = CallableOracle(versions)

        assert isinstance(oracle, ChangeOracle)
        assert await oracle.fetch_versions() == {"prompts": {"lastModified": 3}}


class GatedOracle:
    def __init__(self):
        self.calls = 0
        self.gate = asyncio.Event()
        self.result = {"prompts": {"lastModified": 1}}
        self.error = None

    async def fetch_versions(self):
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class TestCoalescingOracle:
    """Single-flight sharing of metadata requests."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_request(self):
        inner = GatedOracle()
        oracle = CoalescingOracle(inner)

        waiters = [asyncio.create_task(oracle.fetch_versions()) for _ in range(3)]
        await asyncio.sleep(0)
        inner.gate.set()
        results = await asyncio.gather(*waiters)

        assert inner.calls == 1
        assert results == [inner.result] * 3

    @pytest.mark.asyncio
    async def test_sequential_calls_issue_new_requests(self):
        inner = GatedOracle()
        inner.gate.set()
        oracle = CoalescingOracle(inner)

        await oracle.fetch_versions()
        await asyncio.sleep(0)
        await oracle.fetch_versions()

        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_then_clears(self):
        inner = GatedOracle()
        inner.error = OracleUnavailable("down")
        oracle = CoalescingOracle(inner)

        waiters = [asyncio.create_task(oracle.fetch_versions()) for _ in range(2)]
        await asyncio.sleep(0)
        inner.gate.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert all(isinstance(result, OracleUnavailable) for result in results)
        assert inner.calls == 1

        inner.error = None
        assert await oracle.fetch_versions() == inner.result
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_request(self):
        inner = GatedOracle()
        oracle = CoalescingOracle(inner)

        first = asyncio.create_task(oracle.fetch_versions())
        second = asyncio.create_task(oracle.fetch_versions())
        await asyncio.sleep(0)
        first.cancel()
        inner.gate.set()

        assert await second == inner.result
        with pytest.raises(asyncio.CancelledError):
            await first

    @pytest.mark.asyncio
    async def test_fresh_request_starts_even_while_one_is_pending(self):
        inner = NumberedOracle()
        oracle = CoalescingOracle(inner)

        early = asyncio.create_task(oracle.fetch_versions())
        await inner.wait_for_calls(1)
        fresh = asyncio.create_task(oracle.fetch_fresh_versions())
        await inner.wait_for_calls(2)
        late = asyncio.create_task(oracle.fetch_versions())
        await asyncio.sleep(0)
        inner.release_all()

        assert await early == {"request": 1}
        assert await fresh == {"request": 2}
        assert await late == {"request": 2}
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_finished_older_request_does_not_clear_newer_one(self):
        inner = NumberedOracle()
        oracle = CoalescingOracle(inner)

        early = asyncio.create_task(oracle.fetch_versions())
        await inner.wait_for_calls(1)
        fresh = asyncio.create_task(oracle.fetch_fresh_versions())
        await inner.wait_for_calls(2)
        inner.release(1)
        assert await early == {"request": 1}

        late = asyncio.create_task(oracle.fetch_versions())
        await asyncio.sleep(0)
        inner.release_all()

        assert await late == {"request": 2}
        assert await fresh == {"request": 2}
        assert inner.calls == 2


class NumberedOracle:
    """Answers each request with its sequence number once released."""

    def __init__(self):
        self.calls = 0
        self.gates = []

    async def fetch_versions(self):
        self.calls += 1
        number = self.calls
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return {"request": number}

    async def wait_for_calls(self, count):
        while self.calls < count:
            await asyncio.sleep(0)

    def release(self, number):
        self.gates[number - 1].set()

    def release_all(self):
        for gate in self.gates:
            gate.set()
