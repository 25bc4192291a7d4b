"""
Unit tests for the circuit breaker.
"""

from unittest.mock import AsyncMock

import pytest

from shared.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerManager,
    CircuitBreakerOpenException,
    CircuitBreakerState,
)


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestCircuitBreaker:

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker(name="test", failure_threshold=2, recovery_timeout=10.0, clock=clock)

    @pytest.mark.asyncio
    async def test_passes_results_through(self, breaker):
        func = AsyncMock(return_value=42)

        assert await breaker.call(func, 1, flag=True) == 42
        func.assert_awaited_once_with(1, flag=True)
        assert breaker.state is CircuitBreakerState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        failing = AsyncMock(side_effect=RuntimeError("down"))

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(failing)

        assert breaker.is_open()
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(failing)
        assert failing.await_count == 2

    @pytest.mark.asyncio
    async def test_half_open_success_closes(self, breaker, clock):
        failing = AsyncMock(side_effect=RuntimeError("down"))
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(failing)

        clock.now = 10.0
        assert await breaker.call(AsyncMock(return_value="ok")) == "ok"

        assert breaker.state is CircuitBreakerState.CLOSED
        assert breaker.get_state()["failure_count"] == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, breaker, clock):
        failing = AsyncMock(side_effect=RuntimeError("down"))
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(failing)

        clock.now = 10.0
        with pytest.raises(RuntimeError):
            await breaker.call(failing)

        assert breaker.is_open()
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(failing)

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        with pytest.raises(RuntimeError):
            await breaker.call(AsyncMock(side_effect=RuntimeError("blip")))
        await breaker.call(AsyncMock(return_value=None))
        with pytest.raises(RuntimeError):
            await breaker.call(AsyncMock(side_effect=RuntimeError("blip")))

        assert breaker.state is CircuitBreakerState.CLOSED


class TestCircuitBreakerManager:

    def test_breakers_are_shared_by_name(self):
        manager = CircuitBreakerManager()

        first = manager.get_circuit_breaker("catalog_metadata", failure_threshold=3)
        second = manager.get_circuit_breaker("catalog_metadata", failure_threshold=9)

        assert first is second
        assert first.failure_threshold == 3
        assert manager.get_all_states()["catalog_metadata"]["state"] == "closed"
