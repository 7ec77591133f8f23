"""
Resilience patterns for the AIDOC gateway.

This package provides:
- CircuitBreaker: Three-state breaker (CLOSED/OPEN/HALF_OPEN) with statistics
- CircuitBreakerRegistry: Named breakers, one per external dependency
- with_retry / RetryPolicy: Retry with exponential backoff
- Prometheus metrics for state transitions, retries and fallbacks

Reference Documents:
- Building Reactive Microservices in Java (Escoffier): Circuit breaker pattern
- Release It! (Nygard): Stability patterns
"""

from aidoc_gateway.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
)
from aidoc_gateway.resilience.registry import (
    BREAKER_AI,
    BREAKER_DATABASE,
    BREAKER_HEALTH_KIT,
    BREAKER_OURA_API,
    DEFAULT_BREAKER_CONFIGS,
    CircuitBreakerRegistry,
    provider_chain_timeout,
)
from aidoc_gateway.resilience.retry import (
    RetryPolicy,
    is_network_error,
    retryable,
    with_retry,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    # Registry
    "CircuitBreakerRegistry",
    "DEFAULT_BREAKER_CONFIGS",
    "BREAKER_AI",
    "BREAKER_OURA_API",
    "BREAKER_HEALTH_KIT",
    "BREAKER_DATABASE",
    "provider_chain_timeout",
    # Retry
    "RetryPolicy",
    "with_retry",
    "retryable",
    "is_network_error",
]
