"""API Package - FastAPI routes, middleware, error translation and dependencies.

Components:
- routes: API endpoint routers (health, chat)
- middleware: Request logging with correlation ids
- errors: Gateway error to HTTP response translation
- deps: FastAPI dependency injection functions

Note: Import routers directly from aidoc_gateway.api.routes to avoid circular imports.
"""

__all__ = ["routes", "middleware", "errors", "deps"]
