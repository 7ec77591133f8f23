"""
Request Models - API request validation

This module contains Pydantic models for the chat and insights endpoints.

Reference Documents:
- GUIDELINES: FastAPI Pydantic validators (Sinha pp. 193-195)
- ANTI_PATTERN_ANALYSIS: §1.1 Optional types with explicit None
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from aidoc_gateway.models.domain import HealthData, Message


class ChatRequest(BaseModel):
    """
    Chat request model for POST /v1/chat and POST /v1/chat/sync.

    Attributes:
        messages: Conversation so far, oldest first
        timeout_seconds: Optional caller deadline for the whole request
    """

    messages: list[Message] = Field(..., description="Conversation messages")
    timeout_seconds: Optional[float] = Field(
        default=None, gt=0, le=600, description="Caller deadline in seconds"
    )

    @field_validator("messages")
    @classmethod
    def messages_not_empty(cls, v: list[Message]) -> list[Message]:
        """Validate that messages list is not empty."""
        if not v:
            raise ValueError("messages must not be empty")
        return v


class InsightsRequest(BaseModel):
    """
    Insights request model for POST /v1/insights.

    When ``period`` is given a summary for that period is produced instead
    of general insights.
    """

    health_data: list[HealthData] = Field(default_factory=list)
    period: Optional[str] = Field(
        default=None,
        max_length=100,
        description='Period description, e.g. "last week"',
    )
