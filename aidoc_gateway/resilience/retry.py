"""
Retry with Exponential Backoff

Generic retry wrapper for fallible async operations. Attempt 0 runs
immediately; after each failure the executor sleeps, then tries again, with
the delay multiplied by backoff_multiplier and capped at max_delay. Total
attempts are max_retries + 1.

The last error is always re-raised unchanged. Non-retryable errors (per the
policy's predicate) are re-raised after the first failure.

Reference Documents:
- GUIDELINES pp. 1224: Retry logic with decorators
- GUIDELINES pp. 2309: Retry with exponential backoff (Newman)
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from aidoc_gateway.core.exceptions import (
    GatewayTimeoutError,
    ProviderError,
    ProviderUnavailableError,
)
from aidoc_gateway.resilience.metrics import record_retry_attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]


# =============================================================================
# Constants
# =============================================================================

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 10.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0

RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})

_NETWORK_ERROR_MARKERS = (
    "network",
    "timeout",
    "timed out",
    "econnrefused",
    "connection refused",
    "econnreset",
    "connection reset",
    "enotfound",
    "name or service not known",
    "socket hang up",
    "502",
    "503",
    "504",
)


# =============================================================================
# Retry Policy
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration. Pure value; governs a single call.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying)
        initial_delay: Seconds to wait before the first retry
        max_delay: Upper bound on the wait between attempts
        backoff_multiplier: Factor applied to the delay after each failure
        is_retryable: Optional predicate; False stops retrying immediately
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_DELAY_SECONDS
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    is_retryable: Optional[Callable[[BaseException], bool]] = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delays(self) -> list[float]:
        """The sleep before each retry, in order (len == max_retries)."""
        result = []
        delay = self.initial_delay
        for _ in range(self.max_retries):
            result.append(delay)
            delay = min(delay * self.backoff_multiplier, self.max_delay)
        return result


# =============================================================================
# Executor
# =============================================================================


async def with_retry(
    func: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    operation: str = "operation",
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """
    Execute an async function with retry logic and exponential backoff.

    Args:
        func: Zero-argument async callable to attempt
        policy: Retry policy (defaults if omitted)
        operation: Name used in logs and metrics
        sleep: Awaitable sleep, injectable for tests

    Returns:
        The first successful result.

    Raises:
        Exception: The last error raised by ``func``.

    Example:
        >>> await with_retry(lambda: client.get(url), RetryPolicy(max_retries=2))
    """
    policy = policy or RetryPolicy()
    delay = policy.initial_delay
    attempt = 0

    while True:
        try:
            return await func()
        except Exception as e:
            if attempt >= policy.max_retries:
                raise
            if policy.is_retryable is not None and not policy.is_retryable(e):
                logger.debug(
                    f"{operation} failed with non-retryable error: {e!r}",
                    extra={"operation": operation},
                )
                raise

            attempt += 1
            logger.warning(
                f"Retry attempt {attempt}/{policy.max_retries} for {operation} "
                f"after {delay:g}s: {e}",
                extra={"operation": operation, "attempt": attempt},
            )
            record_retry_attempt(operation)

        await sleep(delay)
        delay = min(delay * policy.backoff_multiplier, policy.max_delay)


def retryable(
    policy: Optional[RetryPolicy] = None,
    *,
    operation: Optional[str] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator form of with_retry for async functions.

    Example:
        >>> @retryable(RetryPolicy(max_retries=2, is_retryable=is_network_error))
        ... async def fetch_readiness(user_id: str) -> dict: ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await with_retry(
                lambda: func(*args, **kwargs), policy, operation=name
            )

        return wrapper

    return decorator


# =============================================================================
# Default Retryability Predicate
# =============================================================================


def is_network_error(error: BaseException) -> bool:
    """
    Classify network-class failures as retryable.

    Retryable: connection refused/reset, DNS failures, timeouts, and
    502/503/504 responses. Everything else (auth, validation, 4xx, bad
    payloads) is not.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(error, (GatewayTimeoutError, ProviderUnavailableError)):
        return True
    if isinstance(error, ProviderError) and error.status_code is not None:
        return error.status_code in RETRYABLE_STATUS_CODES

    if isinstance(error, ProviderError) and error.cause is not None:
        if is_network_error(error.cause):
            return True

    message = str(error).lower()
    return any(marker in message for marker in _NETWORK_ERROR_MARKERS)
