"""
Anthropic Provider - Claude messages adapter

This module implements the Anthropic Messages API adapter on top of the
official SDK.

The Messages API takes the system prompt as a separate parameter and only
accepts "user" and "assistant" roles in the message list, so the adapter
splits system messages out and sends everything else with its role mapped.

Reference Documents:
- GUIDELINES pp. 2229: Model API patterns
- ANTI_PATTERN_ANALYSIS §3.4: Import exceptions from core, don't duplicate
"""

from typing import Any, NoReturn, Optional

from anthropic import AnthropicError, APIStatusError, APITimeoutError, AsyncAnthropic

from aidoc_gateway.core.exceptions import GatewayTimeoutError, ProviderError
from aidoc_gateway.models.domain import Message
from aidoc_gateway.providers.base import ChatProvider, ProviderSpec


class AnthropicProvider(ChatProvider):
    """
    Anthropic Claude adapter.

    Args:
        spec: Chain entry (kind must be ANTHROPIC).
        api_key: Anthropic API key; empty means unavailable.
        timeout: Request timeout in seconds.
        temperature: Sampling temperature.
        max_tokens: Response token cap (required by the Messages API).
        client: Pre-built AsyncAnthropic client (tests).
    """

    DEFAULT_TIMEOUT = 60.0
    DEFAULT_MAX_TOKENS = 4096

    def __init__(
        self,
        spec: ProviderSpec,
        api_key: str = "",
        timeout: Optional[float] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        super().__init__(spec)
        self._api_key = api_key
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._temperature = temperature
        self._max_tokens = max_tokens or self.DEFAULT_MAX_TOKENS
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(
                    "Anthropic API key is not configured", provider=self.identifier
                )
            self._client = AsyncAnthropic(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def complete(self, messages: list[Message]) -> str:
        client = self._get_client()

        try:
            response = await client.messages.create(**self._build_request_kwargs(messages))
        except AnthropicError as e:
            self._handle_error(e)

        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def is_available(self) -> bool:
        return bool(self._api_key) or self._client is not None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _build_request_kwargs(self, messages: list[Message]) -> dict[str, Any]:
        system_parts = [m.content for m in messages if m.role == "system"]
        conversation = [
            {"role": "assistant" if m.role == "assistant" else "user", "content": m.content}
            for m in messages
            if m.role != "system"
        ]

        kwargs: dict[str, Any] = {
            "model": self.spec.model,
            "messages": conversation,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        return kwargs

    def _handle_error(self, e: AnthropicError) -> NoReturn:
        """Re-raise an SDK error as a gateway error."""
        if isinstance(e, APITimeoutError):
            raise GatewayTimeoutError(self.identifier, self._timeout) from e

        if isinstance(e, APIStatusError):
            raise ProviderError(
                f"Anthropic request failed: {e.status_code} {e.message}",
                provider=self.identifier,
                status_code=e.status_code,
                cause=e,
            ) from e

        raise ProviderError(
            f"Anthropic request failed: {e}", provider=self.identifier, cause=e
        ) from e
