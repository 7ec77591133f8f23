"""
Tests for CircuitBreaker

Reference Documents:
- Building Reactive Microservices in Java (Escoffier) Ch.6: Circuit breaker pattern
- Release It! (Nygard): Stability patterns

This module tests:
- CLOSED -> OPEN after failure_threshold consecutive failures
- OPEN rejects without invoking until reset_timeout elapses
- HALF_OPEN: success_threshold successes close, one failure re-opens
- Per-call timeout, caller cancellation, fallback, manual reset, statistics
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aidoc_gateway.core.exceptions import CircuitOpenError, GatewayTimeoutError
from aidoc_gateway.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
)


class ServiceDown(Exception):
    pass


async def _fail() -> None:
    raise ServiceDown("down")


async def _ok() -> str:
    return "ok"


async def _trip(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.config.failure_threshold):
        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(
        "test-service",
        CircuitBreakerConfig(
            failure_threshold=3,
            reset_timeout_seconds=60.0,
            success_threshold=2,
            call_timeout_seconds=30.0,
        ),
        clock=clock,
    )


# =============================================================================
# Configuration
# =============================================================================


class TestCircuitBreakerConfig:
    """Tests for CircuitBreakerConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = CircuitBreakerConfig()

        assert config.failure_threshold == 5
        assert config.reset_timeout_seconds == 30.0
        assert config.success_threshold == 2
        assert config.call_timeout_seconds == 10.0
        assert config.fallback is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"failure_threshold": 0},
            {"success_threshold": 0},
            {"reset_timeout_seconds": -1},
            {"call_timeout_seconds": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            CircuitBreakerConfig(**kwargs)

    def test_with_overrides_ignores_none(self) -> None:
        config = CircuitBreakerConfig().with_overrides(
            failure_threshold=7, success_threshold=None
        )

        assert config.failure_threshold == 7
        assert config.success_threshold == 2


# =============================================================================
# CLOSED -> OPEN
# =============================================================================


class TestClosedState:
    """Tests for counting failures while CLOSED."""

    def test_initial_state_is_closed(self, breaker) -> None:
        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.is_healthy()

    @pytest.mark.asyncio
    async def test_stays_closed_below_threshold(self, breaker) -> None:
        for _ in range(2):
            with pytest.raises(ServiceDown):
                await breaker.execute(_fail)

        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.failure_count == 2

    @pytest.mark.asyncio
    async def test_success_resets_consecutive_failures(self, breaker) -> None:
        for _ in range(2):
            with pytest.raises(ServiceDown):
                await breaker.execute(_fail)
        await breaker.execute(_ok)

        assert breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_opens_at_threshold(self, breaker) -> None:
        await _trip(breaker)

        assert breaker.state == CircuitBreakerState.OPEN
        assert not breaker.is_healthy()

    @pytest.mark.asyncio
    async def test_original_error_is_reraised(self, breaker) -> None:
        with pytest.raises(ServiceDown, match="down"):
            await breaker.execute(_fail)

    @pytest.mark.asyncio
    async def test_passes_args_to_function(self, breaker) -> None:
        func = AsyncMock(return_value=3)

        result = await breaker.execute(func, 1, b=2)

        assert result == 3
        func.assert_awaited_once_with(1, b=2)


# =============================================================================
# OPEN
# =============================================================================


class TestOpenState:
    """Tests for fail-fast behavior while OPEN."""

    @pytest.mark.asyncio
    async def test_rejects_without_invoking(self, breaker) -> None:
        await _trip(breaker)
        func = AsyncMock(return_value="never")

        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.execute(func)

        func.assert_not_awaited()
        assert exc_info.value.circuit_name == "test-service"

    @pytest.mark.asyncio
    async def test_rejects_before_reset_timeout(self, breaker, clock) -> None:
        await _trip(breaker)
        clock.advance(59.9)

        with pytest.raises(CircuitOpenError):
            await breaker.execute(_ok)

        assert breaker.state == CircuitBreakerState.OPEN

    @pytest.mark.asyncio
    async def test_admits_probe_after_reset_timeout(self, breaker, clock) -> None:
        await _trip(breaker)
        clock.advance(60.0)

        result = await breaker.execute(_ok)

        assert result == "ok"
        assert breaker.state == CircuitBreakerState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_reading_state_does_not_transition(self, breaker, clock) -> None:
        await _trip(breaker)
        clock.advance(120.0)

        assert breaker.state == CircuitBreakerState.OPEN

    @pytest.mark.asyncio
    async def test_rejected_calls_count_as_calls(self, breaker) -> None:
        await _trip(breaker)
        with pytest.raises(CircuitOpenError):
            await breaker.execute(_ok)

        stats = breaker.get_stats()
        assert stats.total_calls == 4
        assert stats.total_failures == 3

    @pytest.mark.asyncio
    async def test_sync_fallback_used_when_open(self, clock) -> None:
        breaker = CircuitBreaker(
            "with-fallback",
            CircuitBreakerConfig(failure_threshold=1, fallback=lambda: "cached"),
            clock=clock,
        )
        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        assert await breaker.execute(_ok) == "cached"

    @pytest.mark.asyncio
    async def test_async_fallback_used_when_open(self, clock) -> None:
        fallback = AsyncMock(return_value="degraded")
        breaker = CircuitBreaker(
            "with-async-fallback",
            CircuitBreakerConfig(failure_threshold=1, fallback=fallback),
            clock=clock,
        )
        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        assert await breaker.execute(_ok) == "degraded"
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fallback_not_used_while_closed(self, clock) -> None:
        fallback = MagicMock(return_value="cached")
        breaker = CircuitBreaker(
            "with-fallback",
            CircuitBreakerConfig(failure_threshold=2, fallback=fallback),
            clock=clock,
        )

        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        fallback.assert_not_called()


# =============================================================================
# HALF_OPEN
# =============================================================================


class TestHalfOpenState:
    """Tests for probing recovery."""

    @pytest.mark.asyncio
    async def test_recovery_scenario(self, breaker, clock) -> None:
        """3 failures -> OPEN; 60s later a success -> HALF_OPEN(1); another -> CLOSED."""
        await _trip(breaker)
        assert breaker.state == CircuitBreakerState.OPEN

        clock.advance(60.0)
        await breaker.execute(_ok)
        assert breaker.state == CircuitBreakerState.HALF_OPEN
        assert breaker.success_count == 1

        await breaker.execute(_ok)
        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.success_count == 0

    @pytest.mark.asyncio
    async def test_single_failure_reopens(self, breaker, clock) -> None:
        await _trip(breaker)
        clock.advance(60.0)
        await breaker.execute(_ok)
        assert breaker.success_count == 1

        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        assert breaker.state == CircuitBreakerState.OPEN
        assert breaker.success_count == 0

    @pytest.mark.asyncio
    async def test_reopen_restarts_reset_timeout(self, breaker, clock) -> None:
        await _trip(breaker)
        clock.advance(60.0)
        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        clock.advance(30.0)
        with pytest.raises(CircuitOpenError):
            await breaker.execute(_ok)

        clock.advance(30.0)
        assert await breaker.execute(_ok) == "ok"


# =============================================================================
# Timeouts and Cancellation
# =============================================================================


class TestTimeoutsAndCancellation:
    """Tests for the per-call deadline and caller cancellation."""

    @pytest.mark.asyncio
    async def test_timeout_raises_gateway_timeout_and_counts_failure(self) -> None:
        breaker = CircuitBreaker(
            "slow", CircuitBreakerConfig(failure_threshold=1, call_timeout_seconds=0.01)
        )

        async def slow() -> None:
            await asyncio.sleep(1)

        with pytest.raises(GatewayTimeoutError) as exc_info:
            await breaker.execute(slow)

        assert exc_info.value.provider == "slow"
        assert exc_info.value.timeout_seconds == 0.01
        assert breaker.state == CircuitBreakerState.OPEN

    @pytest.mark.asyncio
    async def test_timeout_raised_by_function_is_not_relabelled(self) -> None:
        breaker = CircuitBreaker("io", CircuitBreakerConfig(call_timeout_seconds=5.0))

        async def own_timeout() -> None:
            raise TimeoutError("socket read timed out")

        with pytest.raises(TimeoutError, match="socket read timed out") as exc_info:
            await breaker.execute(own_timeout)

        assert not isinstance(exc_info.value, GatewayTimeoutError)
        assert breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_counts_as_failure(self) -> None:
        breaker = CircuitBreaker("cancelled", CircuitBreakerConfig(failure_threshold=5))
        started = asyncio.Event()

        async def hang() -> None:
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(breaker.execute(hang))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert breaker.failure_count == 1
        assert breaker.get_stats().total_failures == 1


# =============================================================================
# Reset and Statistics
# =============================================================================


class TestResetAndStats:
    """Tests for operator reset and the stats snapshot."""

    @pytest.mark.asyncio
    async def test_reset_closes_and_clears_counters(self, breaker) -> None:
        await _trip(breaker)

        await breaker.reset()

        assert breaker.state == CircuitBreakerState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.get_stats().last_failure is None
        assert await breaker.execute(_ok) == "ok"

    @pytest.mark.asyncio
    async def test_reset_keeps_lifetime_totals(self, breaker) -> None:
        await _trip(breaker)

        await breaker.reset()

        stats = breaker.get_stats()
        assert stats.total_calls == 3
        assert stats.total_failures == 3

    @pytest.mark.asyncio
    async def test_stats_dict_keys(self, breaker) -> None:
        await breaker.execute(_ok)
        with pytest.raises(ServiceDown):
            await breaker.execute(_fail)

        stats = breaker.get_stats().to_dict()

        assert stats["state"] == "CLOSED"
        assert stats["failures"] == 1
        assert stats["successes"] == 0
        assert stats["lastFailure"] is not None
        assert stats["totalCalls"] == 2
        assert stats["totalFailures"] == 1
        assert stats["totalSuccesses"] == 1

    def test_last_failure_none_before_any_failure(self, breaker) -> None:
        assert breaker.get_stats().to_dict()["lastFailure"] is None

    @pytest.mark.asyncio
    async def test_concurrent_failures_open_once(self, clock) -> None:
        breaker = CircuitBreaker(
            "concurrent", CircuitBreakerConfig(failure_threshold=3), clock=clock
        )
        gate = asyncio.Event()

        async def fail_after_gate() -> None:
            await gate.wait()
            raise ServiceDown("down")

        with patch(
            "aidoc_gateway.resilience.circuit_breaker.record_circuit_state_transition"
        ) as transitions:
            tasks = [asyncio.create_task(breaker.execute(fail_after_gate)) for _ in range(10)]
            await asyncio.sleep(0)
            gate.set()
            results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, ServiceDown) for r in results)
        assert breaker.state == CircuitBreakerState.OPEN
        assert breaker.get_stats().total_failures == 10
        transitions.assert_called_once_with("concurrent", "open", "closed")
