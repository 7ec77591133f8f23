"""
Clients Package - HTTP Client Setup

This package provides the HTTP client factory used by HTTP-speaking
provider adapters.

Reference Documents:
- GUIDELINES pp. 2309: Connection pooling per downstream service
"""

from aidoc_gateway.clients.http import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_KEEPALIVE,
    DEFAULT_TIMEOUT_SECONDS,
    create_http_client,
)

__all__ = [
    "create_http_client",
    "DEFAULT_CONNECT_TIMEOUT_SECONDS",
    "DEFAULT_MAX_CONNECTIONS",
    "DEFAULT_MAX_KEEPALIVE",
    "DEFAULT_TIMEOUT_SECONDS",
]
