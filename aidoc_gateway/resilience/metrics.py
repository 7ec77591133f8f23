"""
Resilience Metrics

This module provides Prometheus metrics for the circuit breaker, retry and
provider fallback patterns.

Reference Documents:
- GUIDELINES pp. 2309-2319: Prometheus for metrics collection

Metrics Provided:
- Circuit breaker state transitions (counter) and current state (gauge)
- Circuit breaker rejections (counter)
- Retry attempts (counter)
- Provider fallback attempts and successes (counters)

Anti-Pattern Compliance:
- AP-1: Metric names as constants
"""

from prometheus_client import Counter, Gauge

# =============================================================================
# Constants (AP-1 Compliance: No duplicated string literals)
# =============================================================================

METRIC_CIRCUIT_TRANSITIONS = "aidoc_circuit_breaker_state_transitions_total"
METRIC_CIRCUIT_STATE = "aidoc_circuit_breaker_state"
METRIC_CIRCUIT_REJECTIONS = "aidoc_circuit_breaker_rejections_total"
METRIC_RETRY_ATTEMPTS = "aidoc_retry_attempts_total"
METRIC_FALLBACK_ATTEMPTS = "aidoc_fallback_attempts_total"
METRIC_FALLBACK_SUCCESSES = "aidoc_fallback_successes_total"


# =============================================================================
# Circuit Breaker Metrics
# =============================================================================

CIRCUIT_STATE_TRANSITIONS = Counter(
    name=METRIC_CIRCUIT_TRANSITIONS,
    documentation="Total number of circuit breaker state transitions",
    labelnames=["circuit_name", "to_state", "from_state"],
)

CIRCUIT_STATE_GAUGE = Gauge(
    name=METRIC_CIRCUIT_STATE,
    documentation="Current state of circuit breaker (0=closed, 1=half_open, 2=open)",
    labelnames=["circuit_name"],
)

CIRCUIT_REJECTIONS = Counter(
    name=METRIC_CIRCUIT_REJECTIONS,
    documentation="Calls short-circuited by an open breaker",
    labelnames=["circuit_name", "outcome"],
)

# State to numeric mapping for gauge
_STATE_TO_NUMERIC = {
    "closed": 0,
    "half_open": 1,
    "open": 2,
}


def record_circuit_state_transition(
    circuit_name: str,
    to_state: str,
    from_state: str,
) -> None:
    """
    Record a circuit breaker state transition.

    Args:
        circuit_name: Name of the circuit breaker
        to_state: State transitioning to (closed, open, half_open)
        from_state: State transitioning from (closed, open, half_open)
    """
    CIRCUIT_STATE_TRANSITIONS.labels(
        circuit_name=circuit_name,
        to_state=to_state,
        from_state=from_state,
    ).inc()

    CIRCUIT_STATE_GAUGE.labels(circuit_name=circuit_name).set(
        _STATE_TO_NUMERIC.get(to_state, 0)
    )


def record_circuit_rejection(circuit_name: str, outcome: str) -> None:
    """
    Record a call that never reached the protected operation.

    Args:
        circuit_name: Name of the circuit breaker
        outcome: "rejected" (CircuitOpenError raised) or "fallback"
    """
    CIRCUIT_REJECTIONS.labels(circuit_name=circuit_name, outcome=outcome).inc()


# =============================================================================
# Retry Metrics
# =============================================================================

RETRY_ATTEMPTS = Counter(
    name=METRIC_RETRY_ATTEMPTS,
    documentation="Total number of retries scheduled after a failed attempt",
    labelnames=["operation"],
)


def record_retry_attempt(operation: str) -> None:
    """Record that a failed attempt of ``operation`` is being retried."""
    RETRY_ATTEMPTS.labels(operation=operation).inc()


# =============================================================================
# Fallback Metrics
# =============================================================================

FALLBACK_ATTEMPTS = Counter(
    name=METRIC_FALLBACK_ATTEMPTS,
    documentation="Total number of provider attempts in the fallback chain",
    labelnames=["provider"],
)

FALLBACK_SUCCESSES = Counter(
    name=METRIC_FALLBACK_SUCCESSES,
    documentation="Total number of successful provider calls in the fallback chain",
    labelnames=["provider"],
)


def record_fallback_attempt(provider: str) -> None:
    """
    Record a provider attempt.

    Args:
        provider: Provider identifier being attempted
    """
    FALLBACK_ATTEMPTS.labels(provider=provider).inc()


def record_fallback_success(provider: str) -> None:
    """
    Record a successful provider call.

    Args:
        provider: Provider identifier that answered
    """
    FALLBACK_SUCCESSES.labels(provider=provider).inc()
