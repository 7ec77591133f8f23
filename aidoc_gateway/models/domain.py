"""
Domain Models - Chat messages and health metrics

This module contains the domain models exchanged with the provider gateway:
conversation messages and the health data points summarized by the
insights operations.

Reference Documents:
- GUIDELINES pp. 276: Domain modeling with Pydantic or @dataclass(frozen=True)
- ANTI_PATTERN_ANALYSIS §1.1: Optional types with explicit None

Pattern: Domain models as value objects (Percival & Gregory pp. 59-65)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Message
# =============================================================================


class Message(BaseModel):
    """
    Chat message exchanged with a provider.

    Messages are immutable so a list of them can be hashed into a cache key
    without worrying about later mutation.

    Attributes:
        role: Message role (user, assistant, system)
        content: Message text
        timestamp: Optional client-side timestamp, not sent to providers
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: Optional[datetime] = None

    def to_provider_dict(self) -> dict[str, str]:
        """Role/content pair in the format every provider accepts."""
        return {"role": self.role, "content": self.content}


MessageLike = Union[Message, Mapping[str, Any]]


def coerce_messages(messages: list[MessageLike]) -> list[Message]:
    """
    Normalize a list of Message models or {role, content} dicts.

    Raises:
        pydantic.ValidationError: If a dict is not a valid message.
    """
    return [m if isinstance(m, Message) else Message.model_validate(m) for m in messages]


# =============================================================================
# Health Data
# =============================================================================


class HealthDataSource(str, Enum):
    """Where a health data point came from."""

    OURA_RING = "oura_ring"
    APPLE_HEALTH = "apple_health"
    APPLE_WATCH = "apple_watch"
    MANUAL = "manual"


class HealthDataType(str, Enum):
    """Kind of health metric."""

    STEPS = "steps"
    HEART_RATE = "heart_rate"
    SLEEP_DURATION = "sleep_duration"
    SLEEP_QUALITY = "sleep_quality"
    HRV = "hrv"
    CALORIES = "calories"
    ACTIVITY_SCORE = "activity_score"
    READINESS_SCORE = "readiness_score"


class HealthData(BaseModel):
    """
    A single health metric reading.

    Attributes:
        type: Metric kind (steps, heart_rate, ...)
        value: Numeric reading
        unit: Unit of the reading (e.g. "bpm")
        source: Device or integration that produced it
        timestamp: When the reading was taken
        id: Record identifier, if persisted
        user_id: Owning user, if known
        metadata: Free-form source-specific fields
    """

    type: HealthDataType
    value: float
    unit: str
    source: HealthDataSource
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None
    user_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
