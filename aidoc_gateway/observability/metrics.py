"""
Prometheus Metrics Module

Gateway-level metrics: response cache hit ratio and provider call latency.
Resilience metrics (breaker transitions, retries, fallbacks) live in
resilience.metrics next to the code that records them.

Reference Documents:
- GUIDELINES pp. 2309-2319: "Prometheus for metrics collection and structured logging"
- GUIDELINES: "cache hit ratio metric ... domain-specific implementations"
- Newman (Building Microservices pp. 273-275): Services "expose basic metrics
  themselves" including "response times and error rates"
"""

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)

# =============================================================================
# Cache Metrics
# =============================================================================

CACHE_OPERATIONS_TOTAL = Counter(
    name="aidoc_cache_operations_total",
    documentation="Total response cache operations by result (hit/miss)",
    labelnames=["result"],
)

# =============================================================================
# Provider Metrics
# =============================================================================

PROVIDER_REQUEST_DURATION_SECONDS = Histogram(
    name="aidoc_provider_request_duration_seconds",
    documentation="Duration of provider calls in seconds, successful or not",
    labelnames=["provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_cache_operation(result: str) -> None:
    """
    Record a cache operation.

    Args:
        result: Cache operation result ("hit" or "miss")
    """
    CACHE_OPERATIONS_TOTAL.labels(result=result).inc()


def record_provider_latency(provider: str, duration_seconds: float) -> None:
    """
    Record how long one provider call took.

    Args:
        provider: Provider identifier (e.g. "ollama/llama3.2")
        duration_seconds: Wall time of the call
    """
    PROVIDER_REQUEST_DURATION_SECONDS.labels(provider=provider).observe(duration_seconds)


def generate_metrics() -> str:
    """
    Generate Prometheus metrics text format.

    Returns:
        Prometheus exposition format text
    """
    return generate_latest(REGISTRY).decode("utf-8")
