"""
HTTP Client Factory

Pooled httpx clients for the HTTP-speaking provider adapters (Ollama).

The transport never retries on its own unless asked: retry decisions belong
to resilience.retry, and hidden transport retries would multiply attempts
and distort circuit breaker failure counts.

Reference Documents:
- GUIDELINES pp. 2309: Connection pooling per downstream service (Newman)
- GUIDELINES pp. 2319: Timeout configuration and logging
"""

from typing import Optional

import httpx

DEFAULT_TIMEOUT_SECONDS: float = 30.0
"""Read, write and pool timeout."""

DEFAULT_CONNECT_TIMEOUT_SECONDS: float = 5.0
"""A local model server that does not accept within this is treated as down."""

DEFAULT_MAX_CONNECTIONS: int = 100
DEFAULT_MAX_KEEPALIVE: int = 20

USER_AGENT = "aidoc-gateway/1.0"


def create_http_client(
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    max_connections: Optional[int] = None,
    max_keepalive: Optional[int] = None,
    retries: int = 0,
    headers: Optional[dict[str, str]] = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with its own connection pool.

    The connect timeout is the smaller of timeout_seconds and
    DEFAULT_CONNECT_TIMEOUT_SECONDS, so long generation timeouts do not
    delay detection of an unreachable host.

    Args:
        base_url: Prefix for relative request URLs
        timeout_seconds: Read/write/pool timeout (default: 30.0)
        max_connections: Pool size (default: 100)
        max_keepalive: Idle connections kept open (default: 20)
        retries: Connect retries performed by the transport (default: 0)
        headers: Extra default headers

    Example:
        >>> client = create_http_client(timeout_seconds=120.0)
        >>> response = await client.get("http://localhost:11434/api/tags")
    """
    timeout = DEFAULT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    # Bulkhead: one pool per adapter
    transport = httpx.AsyncHTTPTransport(
        retries=retries,
        limits=httpx.Limits(
            max_connections=max_connections or DEFAULT_MAX_CONNECTIONS,
            max_keepalive_connections=max_keepalive or DEFAULT_MAX_KEEPALIVE,
        ),
    )

    return httpx.AsyncClient(
        base_url=base_url or "",
        timeout=httpx.Timeout(timeout, connect=min(timeout, DEFAULT_CONNECT_TIMEOUT_SECONDS)),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})},
        transport=transport,
    )
