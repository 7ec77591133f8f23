"""
Provider Gateway - AI chat with cache, circuit breaker and fallback chain.

This module answers chat requests by trying the configured provider chain
in order. A request is served, in this order of preference, by:

1. The response cache (no provider call, no breaker interaction)
2. The first provider in [primary, *fallbacks] that succeeds, with the whole
   iteration running through the "ai" circuit breaker when enabled
3. Otherwise the last provider's error is raised, wrapped with its identity

Reference Documents:
- GUIDELINES pp. 211: Service layers for orchestrating foundation models
- GUIDELINES pp. 466: Fail-fast error handling with retry at orchestration level
- Release It! (Nygard): Circuit breaker + fallback stability patterns

Pattern: Service Layer (orchestrates provider calls)
Pattern: Dependency Injection (providers, cache, breaker from the composition root)
"""

import asyncio
import time
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, Sequence

from aidoc_gateway.core.exceptions import (
    AIDocGatewayError,
    GatewayTimeoutError,
    ProviderError,
    ProviderUnavailableError,
)
from aidoc_gateway.models.domain import HealthData, MessageLike, Message, coerce_messages
from aidoc_gateway.observability.logging import get_logger
from aidoc_gateway.observability.metrics import record_provider_latency
from aidoc_gateway.providers.base import ChatProvider
from aidoc_gateway.providers.factory import create_provider_chain
from aidoc_gateway.resilience.circuit_breaker import CircuitBreaker
from aidoc_gateway.resilience.metrics import record_fallback_attempt, record_fallback_success
from aidoc_gateway.resilience.registry import BREAKER_AI
from aidoc_gateway.resilience.retry import RetryPolicy, is_network_error, with_retry
from aidoc_gateway.services.cache import ResponseCache
from aidoc_gateway.services.prompts import build_insights_messages, build_summary_messages

if TYPE_CHECKING:
    from aidoc_gateway.core.config import Settings
    from aidoc_gateway.resilience.registry import CircuitBreakerRegistry

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Raised as-is from the chain; anything else is wrapped in ProviderError.
_TAXONOMY_ERRORS = (ProviderError, GatewayTimeoutError, ProviderUnavailableError)


class ProviderGateway:
    """
    Multi-provider AI gateway.

    Safe to share between concurrent requests: the only mutable state is
    in the cache and the breaker, which guard themselves.

    Example:
        >>> gateway = ProviderGateway.from_settings(settings, registry)
        >>> reply = await gateway.chat_sync([{"role": "user", "content": "hi"}])
        >>> async for chunk in gateway.chat(messages):
        ...     print(chunk, end="")
    """

    def __init__(
        self,
        providers: Sequence[ChatProvider],
        cache: Optional[ResponseCache] = None,
        breaker: Optional[CircuitBreaker] = None,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            providers: Chain in order, primary first
            cache: Response cache; None disables caching
            breaker: Breaker wrapping provider iteration; None calls directly
            request_timeout_seconds: Deadline for each single provider call
            retry_policy: Per-provider retry policy; None means one attempt
        """
        self._providers = tuple(providers)
        self._cache = cache
        self._breaker = breaker
        self._request_timeout = request_timeout_seconds
        self._retry_policy = retry_policy

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        registry: "CircuitBreakerRegistry",
    ) -> "ProviderGateway":
        """Build the chain, cache and breaker from settings."""
        cache = None
        if settings.cache_enabled:
            cache = ResponseCache(
                ttl_seconds=settings.cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
            )

        retry_policy = None
        if settings.provider_max_retries > 0:
            retry_policy = RetryPolicy(
                max_retries=settings.provider_max_retries,
                is_retryable=is_network_error,
            )

        return cls(
            providers=create_provider_chain(settings),
            cache=cache,
            breaker=registry.get(BREAKER_AI) if settings.circuit_breaker_enabled else None,
            request_timeout_seconds=settings.request_timeout_seconds,
            retry_policy=retry_policy,
        )

    @property
    def providers(self) -> tuple[ChatProvider, ...]:
        return self._providers

    @property
    def cache(self) -> Optional[ResponseCache]:
        return self._cache

    @property
    def breaker(self) -> Optional[CircuitBreaker]:
        return self._breaker

    # =========================================================================
    # chat_sync()
    # =========================================================================

    async def chat_sync(
        self,
        messages: list[MessageLike],
        timeout: Optional[float] = None,
    ) -> str:
        """
        Answer a chat request with one complete response.

        Args:
            messages: Conversation as Message models or {role, content} dicts
            timeout: Optional caller deadline for the whole request. On expiry
                the active provider call is cancelled, which the breaker
                counts as a failure.

        Returns:
            The response text.

        Raises:
            ProviderUnavailableError: No provider configured, or the breaker
                is open without a fallback (CircuitOpenError)
            ProviderError: The last provider's failure
            GatewayTimeoutError: A per-call or caller deadline expired
        """
        msgs = coerce_messages(messages)
        if timeout is None:
            return await self._chat_sync(msgs)

        try:
            return await asyncio.wait_for(self._chat_sync(msgs), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise GatewayTimeoutError("gateway", timeout) from e

    async def _chat_sync(self, messages: list[Message]) -> str:
        key = None
        if self._cache is not None:
            key = ResponseCache.make_key(messages)
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("cache_hit", key=key[:12])
                return cached

        if self._breaker is not None:
            return await self._breaker.execute(self._call_providers, messages, key)
        return await self._call_providers(messages, key)

    async def _call_providers(self, messages: list[Message], key: Optional[str]) -> str:
        if not self._providers:
            raise ProviderUnavailableError("No AI providers configured")

        last_error: Optional[AIDocGatewayError] = None
        for index, provider in enumerate(self._providers):
            if index > 0:
                record_fallback_attempt(provider.identifier)

            try:
                response = await self._call_provider(provider, messages)
            except Exception as e:
                last_error = self._wrap_error(provider, e)
                logger.warning(
                    "provider_failed",
                    provider=provider.identifier,
                    position=index,
                    error=str(last_error),
                )
                continue

            if index > 0:
                record_fallback_success(provider.identifier)
            if key is not None and self._cache is not None:
                self._cache.put(key, response)
            return response

        logger.error(
            "all_providers_failed",
            providers=[p.identifier for p in self._providers],
            error=str(last_error),
        )
        raise last_error

    async def _call_provider(self, provider: ChatProvider, messages: list[Message]) -> str:
        start = time.perf_counter()
        try:
            if self._retry_policy is not None:
                return await with_retry(
                    lambda: self._complete_with_timeout(provider, messages),
                    self._retry_policy,
                    operation=f"provider:{provider.identifier}",
                )
            return await self._complete_with_timeout(provider, messages)
        finally:
            record_provider_latency(provider.identifier, time.perf_counter() - start)

    async def _complete_with_timeout(self, provider: ChatProvider, messages: list[Message]) -> str:
        try:
            return await asyncio.wait_for(
                provider.complete(messages), timeout=self._request_timeout
            )
        except asyncio.TimeoutError as e:
            raise GatewayTimeoutError(provider.identifier, self._request_timeout) from e

    @staticmethod
    def _wrap_error(provider: ChatProvider, error: Exception) -> AIDocGatewayError:
        if isinstance(error, _TAXONOMY_ERRORS):
            return error
        return ProviderError(
            str(error) or type(error).__name__,
            provider=provider.identifier,
            cause=error,
        )

    # =========================================================================
    # chat() - streaming
    # =========================================================================

    async def chat(self, messages: list[MessageLike]) -> AsyncIterator[str]:
        """
        Stream a response as text chunks.

        Only the primary provider streams. When it cannot, or when the
        breaker is currently open, this yields the chat_sync() result as a
        single chunk, which brings in the cache and fallback chain.

        Closing the generator closes the provider stream and its transport.
        """
        msgs = coerce_messages(messages)
        primary = self._providers[0] if self._providers else None
        breaker_open = self._breaker is not None and not self._breaker.is_healthy()

        if primary is None or not primary.supports_streaming or breaker_open:
            yield await self.chat_sync(msgs)
            return

        stream = primary.stream(msgs)
        try:
            async for chunk in stream:
                yield chunk
        except AIDocGatewayError:
            raise
        except Exception as e:
            raise self._wrap_error(primary, e) from e
        finally:
            await stream.aclose()

    # =========================================================================
    # Availability and identity
    # =========================================================================

    async def is_available(self) -> bool:
        """True if any provider in the chain reports itself reachable."""
        if not self._providers:
            return False

        results = await asyncio.gather(
            *(provider.is_available() for provider in self._providers),
            return_exceptions=True,
        )
        return any(result is True for result in results)

    def get_provider_name(self) -> str:
        """Kind of the primary provider (e.g. "ollama")."""
        if not self._providers:
            return "none"
        return self._providers[0].spec.kind.value

    def get_model_name(self) -> str:
        """Model of the primary provider (e.g. "llama3.2")."""
        if not self._providers:
            return "none"
        return self._providers[0].spec.model

    # =========================================================================
    # Health conveniences
    # =========================================================================

    async def get_insights(self, data: list[HealthData]) -> str:
        """Ask for insights over health data."""
        return await self.chat_sync(build_insights_messages(data))

    async def get_summary(self, data: list[HealthData], period: str) -> str:
        """Ask for a summary of health data over a period (e.g. "the last week")."""
        return await self.chat_sync(build_summary_messages(data, period))

    # =========================================================================
    # Cache and lifecycle
    # =========================================================================

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def get_cache_stats(self) -> dict[str, Any]:
        if self._cache is None:
            return {"size": 0, "hits": 0, "misses": 0, "hitRate": 0.0}
        return self._cache.stats()

    async def aclose(self) -> None:
        """Release provider transports."""
        for provider in self._providers:
            await provider.aclose()
