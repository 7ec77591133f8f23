"""Models Package - Domain and API models.

Reference Documents:
- GUIDELINES: FastAPI Pydantic validators (Sinha pp. 193-195)
"""

from aidoc_gateway.models.domain import (
    HealthData,
    HealthDataSource,
    HealthDataType,
    Message,
    MessageLike,
    coerce_messages,
)
from aidoc_gateway.models.requests import ChatRequest, InsightsRequest
from aidoc_gateway.models.responses import (
    AIServiceStatus,
    ChatResponse,
    ErrorDetail,
    ErrorResponse,
    HealthStatusResponse,
    InsightsResponse,
)

__all__ = [
    # Domain
    "Message",
    "MessageLike",
    "coerce_messages",
    "HealthData",
    "HealthDataSource",
    "HealthDataType",
    # Requests
    "ChatRequest",
    "InsightsRequest",
    # Responses
    "ChatResponse",
    "InsightsResponse",
    "ErrorDetail",
    "ErrorResponse",
    "AIServiceStatus",
    "HealthStatusResponse",
]
