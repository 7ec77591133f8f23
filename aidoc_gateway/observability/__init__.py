"""
Observability Package

This package provides observability infrastructure:
- Structured JSON logging with correlation ids (structlog)
- Prometheus metrics for the response cache and provider latency

Reference Documents:
- GUIDELINES pp. 2309-2319: Observability = metrics + logging
- GUIDELINES pp. 2319: Newman "log when timeouts occur"
"""

from aidoc_gateway.observability.logging import (
    clear_correlation_id,
    configure_logging,
    correlation_id_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from aidoc_gateway.observability.metrics import (
    generate_metrics,
    record_cache_operation,
    record_provider_latency,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    # Metrics
    "generate_metrics",
    "record_cache_operation",
    "record_provider_latency",
]
