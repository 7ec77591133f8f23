"""
API Middleware Package

- logging: correlation id scoping and request logging with header redaction
"""

from aidoc_gateway.api.middleware.logging import (
    RequestLoggingMiddleware,
    redact_sensitive_headers,
)

__all__ = [
    "RequestLoggingMiddleware",
    "redact_sensitive_headers",
]
