"""
AIDOC Gateway - Main Application Entry Point

This module provides the FastAPI application for the AIDOC AI gateway. It is
the composition root: settings, the circuit breaker registry and the
provider gateway are built once in the lifespan and stored on app.state.

Run with:
    uvicorn aidoc_gateway.main:app
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI

from aidoc_gateway.api.errors import configure_exception_handlers
from aidoc_gateway.api.middleware.logging import RequestLoggingMiddleware
from aidoc_gateway.api.routes.chat import router as chat_router
from aidoc_gateway.api.routes.health import router as health_router
from aidoc_gateway.core.config import Settings, get_settings
from aidoc_gateway.observability.logging import configure_logging, get_logger
from aidoc_gateway.resilience.registry import CircuitBreakerRegistry
from aidoc_gateway.services.gateway import ProviderGateway

# Application metadata
APP_NAME = "AIDOC Gateway"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Resilient multi-provider AI gateway for health insights"

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[CircuitBreakerRegistry] = None,
    gateway: Optional[ProviderGateway] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (default: get_settings() at startup)
        registry: Pre-built breaker registry (tests)
        gateway: Pre-built gateway (tests)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # =====================================================================
        # STARTUP
        # =====================================================================
        app_settings = settings or get_settings()
        configure_logging(level=app_settings.log_level, service=app_settings.service_name)

        app.state.settings = app_settings
        app.state.registry = registry or CircuitBreakerRegistry.from_settings(app_settings)
        app.state.gateway = gateway or ProviderGateway.from_settings(
            app_settings, app.state.registry
        )

        logger.info(
            "startup",
            service=app_settings.service_name,
            version=APP_VERSION,
            environment=app_settings.environment,
            providers=[p.identifier for p in app.state.gateway.providers],
            cache_enabled=app_settings.cache_enabled,
            circuit_breaker_enabled=app_settings.circuit_breaker_enabled,
        )

        yield

        # =====================================================================
        # SHUTDOWN
        # =====================================================================
        logger.info("shutdown", service=app_settings.service_name)
        await app.state.gateway.aclose()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    configure_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(chat_router)

    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        """Root endpoint returning basic service information."""
        return {
            "service": APP_NAME,
            "version": APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
