"""
Services Package

Business logic for the AIDOC gateway: the provider gateway that orchestrates
cache, circuit breaker and fallback chain, the response cache it uses, and
the health prompt builders behind the insights operations.

Reference Documents:
- GUIDELINES pp. 211: Service layers for orchestrating foundation models
"""

from aidoc_gateway.services.cache import ResponseCache
from aidoc_gateway.services.gateway import ProviderGateway
from aidoc_gateway.services.prompts import (
    HEALTH_SYSTEM_PROMPT,
    build_insights_messages,
    build_summary_messages,
    format_health_data,
)

__all__ = [
    "ProviderGateway",
    "ResponseCache",
    "HEALTH_SYSTEM_PROMPT",
    "format_health_data",
    "build_insights_messages",
    "build_summary_messages",
]
