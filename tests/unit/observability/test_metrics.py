"""
Tests for Prometheus Metrics

Reference Documents:
- GUIDELINES pp. 2309-2319: "Prometheus for metrics collection and structured logging"
- Newman (Building Microservices pp. 273-275): Services "expose basic metrics themselves"
"""

from prometheus_client import REGISTRY

from aidoc_gateway.observability.metrics import (
    generate_metrics,
    record_cache_operation,
    record_provider_latency,
)
from aidoc_gateway.resilience.metrics import (
    record_circuit_rejection,
    record_circuit_state_transition,
    record_fallback_attempt,
    record_retry_attempt,
)


def _value(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestGatewayMetrics:
    """Tests for cache and provider metrics."""

    def test_cache_operation_counter(self):
        before = _value("aidoc_cache_operations_total", {"result": "hit"})

        record_cache_operation("hit")

        assert _value("aidoc_cache_operations_total", {"result": "hit"}) == before + 1

    def test_provider_latency_histogram(self):
        labels = {"provider": "ollama/metrics-test"}
        before = _value("aidoc_provider_request_duration_seconds_count", labels)

        record_provider_latency("ollama/metrics-test", 0.4)

        assert _value("aidoc_provider_request_duration_seconds_count", labels) == before + 1

    def test_generate_metrics_is_exposition_text(self):
        record_cache_operation("miss")

        text = generate_metrics()

        assert "# TYPE aidoc_cache_operations_total counter" in text


class TestResilienceMetrics:
    """Tests for breaker, retry and fallback metrics."""

    def test_state_transition_updates_gauge(self):
        record_circuit_state_transition("metrics_test", "open", "closed")

        assert _value("aidoc_circuit_breaker_state", {"circuit_name": "metrics_test"}) == 2

        record_circuit_state_transition("metrics_test", "half_open", "open")

        assert _value("aidoc_circuit_breaker_state", {"circuit_name": "metrics_test"}) == 1

    def test_rejection_counter(self):
        labels = {"circuit_name": "metrics_test", "outcome": "rejected"}
        before = _value("aidoc_circuit_breaker_rejections_total", labels)

        record_circuit_rejection("metrics_test", "rejected")

        assert _value("aidoc_circuit_breaker_rejections_total", labels) == before + 1

    def test_retry_and_fallback_counters(self):
        retry_before = _value("aidoc_retry_attempts_total", {"operation": "metrics_test"})
        fallback_before = _value("aidoc_fallback_attempts_total", {"provider": "openai/x"})

        record_retry_attempt("metrics_test")
        record_fallback_attempt("openai/x")

        assert _value("aidoc_retry_attempts_total", {"operation": "metrics_test"}) == retry_before + 1
        assert _value("aidoc_fallback_attempts_total", {"provider": "openai/x"}) == fallback_before + 1
