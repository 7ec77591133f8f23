"""Routes Package - API endpoint definitions.

- health: liveness, AI/breaker status, operator reset, Prometheus metrics
- chat: streaming and synchronous chat, health insights

Note: Import routers directly from individual modules to avoid circular imports.
Example: from aidoc_gateway.api.routes.health import router as health_router
"""

__all__ = ["health", "chat"]
