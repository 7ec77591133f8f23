"""
Circuit Breaker

This module implements the circuit breaker state machine that gates calls to
one unreliable dependency (AI providers, third-party health APIs, storage).

Reference Documents:
- Building Reactive Microservices in Java (Escoffier) Ch.6, pp.54-62
- Release It! (Nygard): Stability patterns

State Machine:
    CLOSED: Normal operation. Consecutive failures are counted and the
        breaker trips to OPEN once they reach failure_threshold.
    OPEN: Calls are rejected (or routed to the fallback) without invoking
        the operation until reset_timeout has elapsed since the last failure;
        the first call after that moves to HALF_OPEN and goes through.
    HALF_OPEN: Probing. success_threshold consecutive successes close the
        breaker; a single failure re-opens it immediately.

The breaker never retries. Callers compose it with resilience.retry when
they want both.

Anti-Pattern Compliance:
- AP-5: Rejections raise CircuitOpenError from the core taxonomy
- AP-6: State protected by asyncio.Lock() for safe concurrent transitions
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from aidoc_gateway.core.exceptions import CircuitOpenError, GatewayTimeoutError
from aidoc_gateway.resilience.metrics import (
    record_circuit_rejection,
    record_circuit_state_transition,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Constants (AP-1 Compliance: No duplicated string literals)
# =============================================================================

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RESET_TIMEOUT_SECONDS = 30.0
DEFAULT_SUCCESS_THRESHOLD = 2
DEFAULT_CALL_TIMEOUT_SECONDS = 10.0


# =============================================================================
# State Enum
# =============================================================================


class CircuitBreakerState(Enum):
    """
    State of a circuit breaker.

    States:
        CLOSED: Normal operation, all requests pass through
        OPEN: Circuit is tripped, requests fail immediately
        HALF_OPEN: Recovery testing, requests pass through as probes
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


# =============================================================================
# Configuration and Statistics
# =============================================================================


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """
    Immutable breaker configuration.

    Attributes:
        failure_threshold: Consecutive failures that trip CLOSED -> OPEN
        reset_timeout_seconds: Time OPEN must last before a probe is allowed
        success_threshold: Consecutive HALF_OPEN successes needed to close
        call_timeout_seconds: Deadline for each protected call
        fallback: Optional zero-argument callable (sync or async) used
            instead of raising while OPEN
    """

    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    reset_timeout_seconds: float = DEFAULT_RESET_TIMEOUT_SECONDS
    success_threshold: int = DEFAULT_SUCCESS_THRESHOLD
    call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS
    fallback: Optional[Callable[[], Any]] = None

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.reset_timeout_seconds < 0:
            raise ValueError("reset_timeout_seconds must be >= 0")
        if self.call_timeout_seconds <= 0:
            raise ValueError("call_timeout_seconds must be > 0")

    def with_overrides(self, **overrides: Any) -> "CircuitBreakerConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Point-in-time snapshot of a breaker for observability."""

    state: CircuitBreakerState
    failures: int
    successes: int
    last_failure: Optional[datetime]
    total_calls: int
    total_failures: int
    total_successes: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the keys reported by the health-status endpoint."""
        return {
            "state": self.state.name,
            "failures": self.failures,
            "successes": self.successes,
            "lastFailure": self.last_failure.isoformat() if self.last_failure else None,
            "totalCalls": self.total_calls,
            "totalFailures": self.total_failures,
            "totalSuccesses": self.total_successes,
        }


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitBreaker:
    """
    Circuit breaker for protecting against cascading failures.

    Many protected operations may be in flight at once; only the bookkeeping
    is serialized. Each admission decision (including OPEN -> HALF_OPEN) and
    each outcome update is an atomic read-then-update under the lock.

    Example:
        >>> breaker = CircuitBreaker("ai", CircuitBreakerConfig(failure_threshold=3))
        >>> result = await breaker.execute(call_provider, messages)

    Attributes:
        name: Identifier for logging, metrics and registry lookup
        config: Immutable CircuitBreakerConfig
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Initialize CircuitBreaker.

        Args:
            name: Name for identification and metrics
            config: Breaker configuration (defaults if omitted)
            clock: Monotonic clock in seconds, injectable for tests
        """
        self._name = name
        self._config = config or CircuitBreakerConfig()
        self._clock = clock or time.monotonic

        # State tracking
        self._state = CircuitBreakerState.CLOSED
        self._failures = 0
        self._successes = 0
        self._last_failure_time: Optional[float] = None
        self._last_failure_at: Optional[datetime] = None

        # Lifetime counters, never reset
        self._total_calls = 0
        self._total_failures = 0
        self._total_successes = 0

        # AP-6 Compliance: atomic state transitions
        self._lock = asyncio.Lock()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def name(self) -> str:
        """Name of this circuit breaker."""
        return self._name

    @property
    def config(self) -> CircuitBreakerConfig:
        """Breaker configuration."""
        return self._config

    @property
    def state(self) -> CircuitBreakerState:
        """
        Current state of the circuit breaker.

        Reading the state never transitions it; OPEN -> HALF_OPEN only
        happens when a call is admitted.
        """
        return self._state

    @property
    def failure_count(self) -> int:
        """Current consecutive failure count."""
        return self._failures

    @property
    def success_count(self) -> int:
        """Current consecutive HALF_OPEN success count."""
        return self._successes

    def is_healthy(self) -> bool:
        """Whether the circuit is currently allowing requests."""
        return self._state != CircuitBreakerState.OPEN

    def get_stats(self) -> CircuitBreakerStats:
        """Snapshot of state and counters."""
        return CircuitBreakerStats(
            state=self._state,
            failures=self._failures,
            successes=self._successes,
            last_failure=self._last_failure_at,
            total_calls=self._total_calls,
            total_failures=self._total_failures,
            total_successes=self._total_successes,
        )

    # =========================================================================
    # State Management (callers hold the lock)
    # =========================================================================

    def _transition(self, new_state: CircuitBreakerState) -> None:
        old_state = self._state
        self._state = new_state
        record_circuit_state_transition(self._name, new_state.value, old_state.value)

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed since the last failure to probe."""
        if self._last_failure_time is None:
            return True

        elapsed = self._clock() - self._last_failure_time
        return elapsed >= self._config.reset_timeout_seconds

    def _admit(self) -> bool:
        self._total_calls += 1

        if self._state != CircuitBreakerState.OPEN:
            return True

        if self._should_attempt_reset():
            self._transition(CircuitBreakerState.HALF_OPEN)
            logger.info(
                "Circuit breaker transitioning to HALF_OPEN",
                extra={"circuit": self._name},
            )
            return True

        return False

    def _open(self) -> None:
        self._successes = 0
        self._transition(CircuitBreakerState.OPEN)
        logger.warning(
            f"Circuit breaker OPENED after {self._failures} failures",
            extra={"circuit": self._name},
        )

    def _close(self) -> None:
        self._failures = 0
        self._successes = 0
        self._transition(CircuitBreakerState.CLOSED)
        logger.info(
            "Circuit breaker CLOSED - service recovered",
            extra={"circuit": self._name},
        )

    async def _record_success(self) -> None:
        async with self._lock:
            self._total_successes += 1

            if self._state == CircuitBreakerState.HALF_OPEN:
                self._successes += 1
                if self._successes >= self._config.success_threshold:
                    self._close()
            elif self._state == CircuitBreakerState.CLOSED:
                self._failures = 0

    async def _record_failure(self, error: BaseException) -> None:
        async with self._lock:
            self._total_failures += 1
            self._failures += 1
            self._last_failure_time = self._clock()
            self._last_failure_at = datetime.now(timezone.utc)

            logger.warning(
                f"Circuit breaker failure {self._failures}/"
                f"{self._config.failure_threshold}: {error!r}",
                extra={"circuit": self._name},
            )

            if self._state == CircuitBreakerState.HALF_OPEN:
                self._open()
            elif (
                self._state == CircuitBreakerState.CLOSED
                and self._failures >= self._config.failure_threshold
            ):
                self._open()
            # Already OPEN: a late in-flight failure only refreshes the timestamp.

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Execute an async function through the circuit breaker.

        Args:
            func: Async function to call
            *args: Positional arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            The result of the function call, or the fallback's result when
            the circuit is open and a fallback is configured

        Raises:
            CircuitOpenError: If the circuit is open and there is no fallback
            GatewayTimeoutError: If the call exceeds call_timeout_seconds
            Exception: Any exception raised by the wrapped function
        """
        async with self._lock:
            admitted = self._admit()

        if not admitted:
            return await self._handle_open_circuit()

        timeout = self._config.call_timeout_seconds
        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                result = await func(*args, **kwargs)
        except TimeoutError as e:
            await self._record_failure(e)
            # A TimeoutError raised by func itself propagates unchanged
            if not deadline.expired():
                raise
            raise GatewayTimeoutError(self._name, timeout) from e
        except asyncio.CancelledError as e:
            # Caller abandoned the call; the dependency still gets the blame.
            await self._record_failure(e)
            raise
        except Exception as e:
            await self._record_failure(e)
            raise

        await self._record_success()
        return result

    async def _handle_open_circuit(self) -> Any:
        fallback = self._config.fallback
        if fallback is None:
            logger.debug(
                "Circuit OPEN - rejecting call",
                extra={"circuit": self._name},
            )
            record_circuit_rejection(self._name, "rejected")
            raise CircuitOpenError(self._name)

        logger.debug("Circuit OPEN - using fallback", extra={"circuit": self._name})
        record_circuit_rejection(self._name, "fallback")
        result = fallback()
        if inspect.isawaitable(result):
            result = await result
        return result

    # =========================================================================
    # Operator Actions
    # =========================================================================

    async def reset(self) -> None:
        """
        Force the circuit CLOSED with consecutive counters and the last
        failure cleared.

        Lifetime totals are kept.
        """
        async with self._lock:
            old_state = self._state
            self._state = CircuitBreakerState.CLOSED
            self._failures = 0
            self._successes = 0
            self._last_failure_time = None
            self._last_failure_at = None
            if old_state != CircuitBreakerState.CLOSED:
                record_circuit_state_transition(
                    self._name, CircuitBreakerState.CLOSED.value, old_state.value
                )
        logger.info("Circuit breaker manually reset", extra={"circuit": self._name})
