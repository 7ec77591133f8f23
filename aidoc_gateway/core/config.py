"""
Core configuration module for the AIDOC gateway.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the AIDOC_ prefix.

Reference:
- GUIDELINES: Sinha pp. 193-195 - Pydantic BaseSettings pattern
"""

from functools import lru_cache
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode


class BreakerOverride(BaseModel):
    """
    Per-dependency circuit breaker overrides.

    Unset fields keep the registry default for that dependency.
    """

    failure_threshold: Optional[int] = Field(default=None, ge=1)
    reset_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    success_threshold: Optional[int] = Field(default=None, ge=1)
    call_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    def as_kwargs(self) -> dict[str, Any]:
        """Return only the fields that were set."""
        return self.model_dump(exclude_none=True)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the AIDOC_ prefix for environment variables.
    Example: AIDOC_PRIMARY_MODEL=ollama/llama3.2
    """

    # =========================================================================
    # Service Configuration
    # =========================================================================
    service_name: str = Field(
        default="aidoc-gateway",
        description="Name of the service for logging and identification",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # =========================================================================
    # Provider Chain
    # =========================================================================
    primary_model: str = Field(
        default="ollama/llama3.2",
        description="Primary model as <provider>/<model>",
    )
    fallback_models: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Ordered fallback models (comma-separated in the environment)",
    )
    ollama_url: str = Field(
        default="http://localhost:11434",
        description="URL of the local Ollama instance",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature sent to every provider",
    )
    max_tokens: int = Field(
        default=4096,
        ge=1,
        description="Maximum tokens to generate (required by Anthropic)",
    )

    # =========================================================================
    # Provider API Keys
    # SecretStr masks values in logs/repr, use .get_secret_value() to access
    # =========================================================================
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key for GPT models",
    )
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key for Claude models",
    )

    # =========================================================================
    # Response Cache
    # =========================================================================
    cache_enabled: bool = Field(default=True, description="Enable response caching")
    cache_ttl_seconds: int = Field(
        default=300,
        ge=1,
        description="Cache entry time-to-live in seconds",
    )
    cache_max_entries: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of cached responses",
    )

    # =========================================================================
    # Timeouts and Retries
    # =========================================================================
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600.0,
        description="Timeout in seconds for a single provider call",
    )
    provider_max_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Retries per provider for network-class failures",
    )

    # =========================================================================
    # Circuit Breakers
    # =========================================================================
    circuit_breaker_enabled: bool = Field(
        default=True,
        description="Route AI calls through the 'ai' circuit breaker",
    )
    breaker_overrides: dict[str, BreakerOverride] = Field(
        default_factory=dict,
        description="Per-dependency overrides, JSON: {\"ai\": {\"failure_threshold\": 5}}",
    )

    model_config = {
        "env_prefix": "AIDOC_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("fallback_models", mode="before")
    @classmethod
    def split_fallback_models(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("primary_model")
    @classmethod
    def validate_primary_model(cls, v: str) -> str:
        """Validate the <provider>/<model> identifier."""
        _parse_model_identifier(v)
        return v

    @field_validator("fallback_models")
    @classmethod
    def validate_fallback_models(cls, v: list[str]) -> list[str]:
        """Validate every fallback identifier."""
        for identifier in v:
            _parse_model_identifier(identifier)
        return v


def _parse_model_identifier(identifier: str) -> None:
    # Imported lazily: providers depend on core, not the other way round.
    from aidoc_gateway.core.exceptions import ConfigurationError
    from aidoc_gateway.providers.base import ProviderSpec

    try:
        ProviderSpec.parse(identifier)
    except ConfigurationError as e:
        raise ValueError(e.message) from e


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
