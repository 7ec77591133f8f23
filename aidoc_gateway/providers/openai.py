"""
OpenAI Provider - Cloud chat completion adapter

This module implements the OpenAI chat completion adapter on top of the
official SDK. Availability means "an API key is configured"; the adapter does
not probe the network.

Reference Documents:
- GUIDELINES pp. 2229: Model API patterns
- ANTI_PATTERN_ANALYSIS §3.4: Import exceptions from core, don't duplicate

Design Patterns:
- Ports and Adapters: OpenAIProvider implements ChatProvider
- Adapter Pattern: Maps SDK errors onto the gateway error taxonomy
"""

from typing import NoReturn, Optional

from openai import APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError

from aidoc_gateway.core.exceptions import GatewayTimeoutError, ProviderError
from aidoc_gateway.models.domain import Message
from aidoc_gateway.providers.base import ChatProvider, ProviderSpec


class OpenAIProvider(ChatProvider):
    """
    OpenAI chat completion adapter.

    The SDK's built-in retries are disabled: retry and fallback are decided
    by the gateway.

    Args:
        spec: Chain entry (kind must be OPENAI).
        api_key: OpenAI API key; empty means unavailable.
        timeout: Request timeout in seconds.
        temperature: Sampling temperature.
        client: Pre-built AsyncOpenAI client (tests).
    """

    DEFAULT_TIMEOUT = 60.0

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str = "",
        timeout: Optional[float] = None,
        temperature: float = 0.7,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        super().__init__(spec)
        self._api_key = api_key
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ProviderError("OpenAI API key is not configured", provider=self.identifier)
            self._client = AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def complete(self, messages: list[Message]) -> str:
        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=self.spec.model,
                messages=[m.to_provider_dict() for m in messages],
                temperature=self._temperature,
            )
        except OpenAIError as e:
            self._handle_error(e)

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def is_available(self) -> bool:
        return bool(self._api_key) or self._client is not None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()

    def _handle_error(self, e: OpenAIError) -> NoReturn:
        """
        Re-raise an SDK error as a gateway error.

        APITimeoutError subclasses APIConnectionError, so it is checked first.
        """
        if isinstance(e, APITimeoutError):
            raise GatewayTimeoutError(self.identifier, self._timeout) from e

        if isinstance(e, APIStatusError):
            raise ProviderError(
                f"OpenAI request failed: {e.status_code} {e.message}",
                provider=self.identifier,
                status_code=e.status_code,
                cause=e,
            ) from e

        raise ProviderError(
            f"OpenAI request failed: {e}", provider=self.identifier, cause=e
        ) from e
