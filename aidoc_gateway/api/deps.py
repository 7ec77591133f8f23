"""
API Dependencies

FastAPI dependency functions for the API layer. The settings, breaker
registry and gateway are built once in the application lifespan and stored
on ``app.state``; these functions hand them to route handlers.

Reference Documents:
- GUIDELINES: Sinha pp. 89-91 (Dependency injection patterns)

Pattern: Centralized dependency injection following FastAPI best practices.
All dependencies can be overridden in tests through
``app.dependency_overrides``.
"""

from fastapi import Request

from aidoc_gateway.core.config import Settings
from aidoc_gateway.resilience.registry import CircuitBreakerRegistry
from aidoc_gateway.services.gateway import ProviderGateway


def get_settings(request: Request) -> Settings:
    """Settings the application was started with."""
    return request.app.state.settings


def get_registry(request: Request) -> CircuitBreakerRegistry:
    """Process-wide circuit breaker registry."""
    return request.app.state.registry


def get_gateway(request: Request) -> ProviderGateway:
    """The AI provider gateway."""
    return request.app.state.gateway


__all__ = [
    "get_settings",
    "get_registry",
    "get_gateway",
]
