from __future__ import annotations
import pytest
from agrisense.utils.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

async def failing():
    raise ConnectionError("down")

async def succeeding():
    return "ok"

@pytest.mark.asyncio
async def test_opens_after_threshold_and_fails_fast():
    breaker = CircuitBreaker("test", failure_threshold=2, recovery_timeout=30, clock=FakeClock())
    for _ in range(2):
        with pytest.raises(ConnectionError):
            await breaker.call(failing)
    assert breaker.state == CircuitState.OPEN

    with pytest.raises(CircuitOpenError):
        await breaker.call(succeeding)

@pytest.mark.asyncio
async def test_half_open_probe_closes_on_success():
    clock = FakeClock()
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30, clock=clock)
    with pytest.raises(ConnectionError):
        await breaker.call(failing)

    clock.now += 31
    assert await breaker.call(succeeding) == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0

@pytest.mark.asyncio
async def test_half_open_probe_failure_reopens():
    clock = FakeClock()
    breaker = CircuitBreaker("test", failure_threshold=3, recovery_timeout=30, clock=clock)
    for _ in range(3):
        with pytest.raises(ConnectionError):
            await breaker.call(failing)

    clock.now += 31
    with pytest.raises(ConnectionError):
        await breaker.call(failing)
    assert breaker.state == CircuitState.OPEN

@pytest.mark.asyncio
async def test_unexpected_exception_types_do_not_count():
    breaker = CircuitBreaker("test", failure_threshold=1, expected_exception=ConnectionError)

    async def bad_value():
        raise ValueError("not a transport problem")

    with pytest.raises(ValueError):
        await breaker.call(bad_value)
    assert breaker.state == CircuitState.CLOSED
