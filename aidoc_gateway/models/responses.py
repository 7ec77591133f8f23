"""
Response Models - API response serialization

Reference Documents:
- GUIDELINES: FastAPI Pydantic models (Sinha pp. 193-195)
"""

from typing import Any, Optional

from pydantic import BaseModel


class ChatResponse(BaseModel):
    """Complete (non-streaming) chat response."""

    content: str
    provider: str
    model: str


class InsightsResponse(BaseModel):
    """Insights or summary text generated from health data."""

    insights: str
    period: Optional[str] = None


class ErrorDetail(BaseModel):
    """Error body returned by the API layer."""

    message: str
    code: str
    provider: Optional[str] = None
    type: str


class ErrorResponse(BaseModel):
    """Envelope for ErrorDetail, matching the {"error": {...}} shape."""

    error: ErrorDetail


class AIServiceStatus(BaseModel):
    """AI section of the health status report."""

    available: bool
    provider: str
    model: str
    circuit_breaker: Optional[dict[str, Any]] = None


class HealthStatusResponse(BaseModel):
    """Aggregated status of the AI gateway and every circuit breaker."""

    status: str
    timestamp: str
    uptime_seconds: float
    ai: AIServiceStatus
    circuit_breakers: dict[str, dict[str, Any]]
