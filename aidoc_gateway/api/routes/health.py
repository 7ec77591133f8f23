"""
Health Router - Liveness, AI status and circuit breaker operations

Endpoints:
    GET  /health                                 liveness
    GET  /health/status                          AI availability + every breaker's stats
    POST /health/circuit-breakers/{name}/reset   operator reset of one breaker

The status report is "degraded" (HTTP 503) when no AI provider is reachable
or any circuit breaker is OPEN.

Reference Documents:
- Building Microservices (Newman) pp. 273-275: Service metrics and synthetic monitoring
- Building Python Microservices with FastAPI (Sinha) pp. 89-91: Dependency injection patterns
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from aidoc_gateway.api.deps import get_gateway, get_registry, get_settings
from aidoc_gateway.core.config import Settings
from aidoc_gateway.observability.logging import get_logger
from aidoc_gateway.observability.metrics import generate_metrics
from aidoc_gateway.resilience.circuit_breaker import CircuitBreakerState
from aidoc_gateway.resilience.registry import BREAKER_AI, CircuitBreakerRegistry
from aidoc_gateway.services.gateway import ProviderGateway
from aidoc_gateway.models.responses import AIServiceStatus, HealthStatusResponse

logger = get_logger(__name__)

_STARTED_AT = time.monotonic()

_OPEN = CircuitBreakerState.OPEN.name


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Liveness response model."""

    status: str
    service: str


class BreakerResetResponse(BaseModel):
    """Result of an operator reset."""

    name: str
    stats: dict


router = APIRouter(tags=["Health"])


# =============================================================================
# Liveness
# =============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Process is up; no dependency checks."""
    return HealthResponse(status="healthy", service=settings.service_name)


# =============================================================================
# Status
# =============================================================================


@router.get("/health/status", response_model=HealthStatusResponse)
async def health_status(
    response: Response,
    gateway: ProviderGateway = Depends(get_gateway),
    registry: CircuitBreakerRegistry = Depends(get_registry),
) -> HealthStatusResponse:
    """
    Aggregated AI and circuit breaker status.

    Returns 503 with status "degraded" when the AI is unreachable or any
    breaker is OPEN.
    """
    available = await gateway.is_available()
    breakers = registry.get_all_stats()
    any_open = any(stats["state"] == _OPEN for stats in breakers.values())

    status = "healthy" if available and not any_open else "degraded"
    if status == "degraded":
        response.status_code = 503
        logger.warning(
            "health_degraded",
            ai_available=available,
            open_breakers=[name for name, s in breakers.items() if s["state"] == _OPEN],
        )

    return HealthStatusResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
        ai=AIServiceStatus(
            available=available,
            provider=gateway.get_provider_name(),
            model=gateway.get_model_name(),
            circuit_breaker=breakers.get(BREAKER_AI),
        ),
        circuit_breakers=breakers,
    )


# =============================================================================
# Operator Actions
# =============================================================================


@router.post("/health/circuit-breakers/{name}/reset", response_model=BreakerResetResponse)
async def reset_circuit_breaker(
    name: str,
    registry: CircuitBreakerRegistry = Depends(get_registry),
) -> BreakerResetResponse:
    """Force one breaker CLOSED. 404 on an unknown name."""
    if name not in registry:
        raise HTTPException(status_code=404, detail=f"Unknown circuit breaker '{name}'")

    await registry.reset(name)
    logger.info("circuit_breaker_reset_by_operator", circuit=name)
    return BreakerResetResponse(name=name, stats=registry.get(name).get_stats().to_dict())


# =============================================================================
# Metrics
# =============================================================================


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> PlainTextResponse:
    """Prometheus exposition format."""
    return PlainTextResponse(
        content=generate_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
