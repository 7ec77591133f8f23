"""
API Error Translation

Maps the gateway error taxonomy onto HTTP responses with a consistent
``{"error": {message, code, provider, type}}`` body:

    ProviderUnavailableError / CircuitOpenError -> 503 + Retry-After
    GatewayTimeoutError                         -> 504
    ProviderError                               -> 502
    any other AIDocGatewayError                 -> 500

Pattern: Error translation (Newman pp. 273-275)
Anti-Pattern §3.1 Avoided: every translated error is logged with context
"""

import math
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aidoc_gateway.core.exceptions import (
    AIDocGatewayError,
    CircuitOpenError,
    GatewayTimeoutError,
    ProviderError,
    ProviderUnavailableError,
)
from aidoc_gateway.models.responses import ErrorDetail, ErrorResponse
from aidoc_gateway.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 30


def error_status(exc: AIDocGatewayError) -> int:
    """HTTP status code for a gateway error."""
    if isinstance(exc, ProviderUnavailableError):
        return 503
    if isinstance(exc, GatewayTimeoutError):
        return 504
    if isinstance(exc, ProviderError):
        return 502
    return 500


def error_type(exc: AIDocGatewayError) -> str:
    if isinstance(exc, CircuitOpenError):
        return "circuit_open"
    if isinstance(exc, ProviderUnavailableError):
        return "unavailable"
    if isinstance(exc, GatewayTimeoutError):
        return "timeout"
    if isinstance(exc, ProviderError):
        return "provider_error"
    return "gateway_error"


def error_code(exc: AIDocGatewayError) -> str:
    return str(getattr(exc.error_code, "value", exc.error_code))


def error_body(exc: AIDocGatewayError) -> ErrorResponse:
    """Serializable error envelope, also used for SSE error frames."""
    return ErrorResponse(
        error=ErrorDetail(
            message=exc.message,
            code=error_code(exc),
            provider=getattr(exc, "provider", None) or getattr(exc, "circuit_name", None),
            type=error_type(exc),
        )
    )


def _retry_after(request: Request, exc: ProviderUnavailableError) -> int:
    registry = getattr(request.app.state, "registry", None)
    circuit_name: Optional[str] = getattr(exc, "circuit_name", None)
    if registry is not None and circuit_name is not None and circuit_name in registry:
        return max(1, math.ceil(registry.get(circuit_name).config.reset_timeout_seconds))
    return DEFAULT_RETRY_AFTER_SECONDS


async def gateway_error_handler(request: Request, exc: AIDocGatewayError) -> JSONResponse:
    """Translate a gateway error raised by a route handler."""
    status_code = error_status(exc)
    logger.warning(
        "request_failed",
        path=request.url.path,
        status_code=status_code,
        error_code=error_code(exc),
        error=str(exc),
    )

    headers = None
    if isinstance(exc, ProviderUnavailableError):
        headers = {"Retry-After": str(_retry_after(request, exc))}

    return JSONResponse(
        status_code=status_code,
        content=error_body(exc).model_dump(),
        headers=headers,
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the gateway error handler on the application."""
    app.add_exception_handler(AIDocGatewayError, gateway_error_handler)
