"""
Custom exceptions for the AIDOC gateway.

This module provides the error taxonomy surfaced by the resilience layer
and the provider gateway. All exceptions inherit from AIDocGatewayError and
carry an error code so API handlers can map them to consistent responses.

Taxonomy:
    ProviderError: A specific provider rejected the call or errored
    ProviderUnavailableError: Nothing reachable, safe to retry later
    CircuitOpenError: Breaker rejected the call without attempting it
    GatewayTimeoutError: A per-call or caller deadline was exceeded

Reference:
- Release It! (Nygard): Fail fast, preserve the root cause
- GUIDELINES: Specific exceptions, always capture with 'as e'
"""

from enum import Enum
from typing import Any, Optional


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for gateway exceptions.

    These codes provide a consistent way to identify error types
    across the API and in logging.
    """

    GATEWAY_ERROR = "GATEWAY_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    TIMEOUT = "TIMEOUT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class AIDocGatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GATEWAY_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# ProviderError
# =============================================================================


class ProviderError(AIDocGatewayError):
    """
    Exception for LLM provider failures.

    Raised when a provider rejects a request or returns something the
    gateway cannot use (non-2xx status, unparseable body, missing
    credentials). The underlying exception is kept on ``cause`` and
    chained through ``__cause__``.

    Attributes:
        provider: Provider identifier (e.g., "ollama/llama3.2").
        status_code: HTTP status code from the provider API (if applicable).
        cause: The original exception, if any.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        error_code: str = ErrorCode.PROVIDER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.provider = provider
        self.status_code = status_code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


# =============================================================================
# ProviderUnavailableError / CircuitOpenError
# =============================================================================


class ProviderUnavailableError(AIDocGatewayError):
    """
    Exception raised when no provider can be reached.

    Callers should treat this as a retry-later condition: no data was
    lost and it is safe to show "service temporarily unavailable".
    """

    def __init__(
        self,
        message: str = "No AI provider is available",
        error_code: str = ErrorCode.PROVIDER_UNAVAILABLE,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)


class CircuitOpenError(ProviderUnavailableError):
    """
    Exception raised when a circuit breaker is open and has no fallback.

    The protected operation was not invoked.

    Attributes:
        circuit_name: Name of the circuit breaker that rejected the call
    """

    def __init__(self, circuit_name: str, message: Optional[str] = None) -> None:
        self.circuit_name = circuit_name
        super().__init__(
            message or f"Circuit '{circuit_name}' is open - service unavailable",
            error_code=ErrorCode.CIRCUIT_OPEN,
        )


# =============================================================================
# GatewayTimeoutError
# =============================================================================


class GatewayTimeoutError(AIDocGatewayError):
    """
    Exception raised when a deadline is exceeded.

    Named GatewayTimeoutError to avoid shadowing the builtin TimeoutError.

    Attributes:
        provider: Provider (or breaker) whose call exceeded the deadline.
        timeout_seconds: The deadline that was exceeded.
    """

    def __init__(
        self,
        provider: str,
        timeout_seconds: Optional[float] = None,
        message: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            if timeout_seconds is not None:
                message = f"Call to '{provider}' timed out after {timeout_seconds:g}s"
            else:
                message = f"Call to '{provider}' timed out"
        super().__init__(message, ErrorCode.TIMEOUT, **kwargs)
        self.provider = provider
        self.timeout_seconds = timeout_seconds


# =============================================================================
# ConfigurationError
# =============================================================================


class ConfigurationError(AIDocGatewayError):
    """Exception for invalid gateway configuration (e.g. unknown provider kind)."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, **kwargs)
