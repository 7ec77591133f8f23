"""
Core module for the AIDOC gateway.

This module contains configuration and the exception taxonomy.
"""

from aidoc_gateway.core.config import BreakerOverride, Settings, get_settings
from aidoc_gateway.core.exceptions import (
    AIDocGatewayError,
    CircuitOpenError,
    ConfigurationError,
    ErrorCode,
    GatewayTimeoutError,
    ProviderError,
    ProviderUnavailableError,
)

__all__ = [
    # Config
    "Settings",
    "BreakerOverride",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "AIDocGatewayError",
    "ProviderError",
    "ProviderUnavailableError",
    "CircuitOpenError",
    "GatewayTimeoutError",
    "ConfigurationError",
]
