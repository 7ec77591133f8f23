"""
Request Logging Middleware

Logs every HTTP request with method, path, status and duration, and runs the
request inside a correlation id context so every log line emitted while
handling it carries the same id.

The id is taken from the X-Request-ID header when present, otherwise a new
UUID is generated; it is echoed back in the response header.

Reference Documents:
- GUIDELINES: Sinha pp. 89-91 (FastAPI middleware patterns)
- ANTI_PATTERN_ANALYSIS: §3.1 No bare except clauses
"""

import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from aidoc_gateway.observability.logging import correlation_id_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Header values that must never reach the logs
SENSITIVE_HEADER_PATTERNS = [
    "authorization",
    "api-key",
    "apikey",
    "api_key",
    "x-auth-token",
    "cookie",
]


def redact_sensitive_headers(headers: dict[str, str]) -> dict[str, str]:
    """
    Redact sensitive headers from a headers dictionary.

    Returns:
        Dictionary with sensitive values replaced with [REDACTED]
    """
    return {
        key: "[REDACTED]"
        if any(pattern in key.lower() for pattern in SENSITIVE_HEADER_PATTERNS)
        else value
        for key, value in headers.items()
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Correlation id scoping and access logging for HTTP requests."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        with correlation_id_context(request_id):
            logger.debug(
                "request_received",
                method=method,
                path=path,
                headers=redact_sensitive_headers(dict(request.headers)),
            )

            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_crashed",
                    method=method,
                    path=path,
                    error=f"{type(e).__name__}: {e}",
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                raise

            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
