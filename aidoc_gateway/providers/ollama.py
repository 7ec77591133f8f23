"""
Ollama Provider - Local model adapter

This module implements the adapter for a local Ollama instance. Ollama is the
only streaming-capable provider in the chain: /api/chat with stream=true
returns newline-delimited JSON objects, each carrying a content fragment.

Ollama API Reference:
- Base URL: http://localhost:11434 (default)
- Chat endpoint: POST /api/chat
- Models endpoint: GET /api/tags (used as a reachability ping)

Reference Documents:
- GUIDELINES pp. 2309: Timeout configuration and connection pooling
- GUIDELINES pp. 1004: Self-hosted model patterns
"""

import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from aidoc_gateway.clients.http import create_http_client
from aidoc_gateway.core.exceptions import GatewayTimeoutError, ProviderError
from aidoc_gateway.models.domain import Message
from aidoc_gateway.providers.base import ChatProvider, ProviderSpec

logger = logging.getLogger(__name__)


class OllamaProvider(ChatProvider):
    """
    Ollama local model provider adapter.

    Args:
        spec: Chain entry (kind must be OLLAMA).
        base_url: URL of the Ollama instance (default: http://localhost:11434).
        timeout: Request timeout in seconds (default: 120.0 for long generations).
        temperature: Sampling temperature sent in options.
        client: Pre-built httpx client; the provider does not close it.

    Example:
        >>> provider = OllamaProvider(ProviderSpec.parse("ollama/llama3.2"))
        >>> async for chunk in provider.stream(messages):
        ...     print(chunk, end="")
    """

    DEFAULT_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 120.0
    AVAILABILITY_TIMEOUT = 5.0

    def __init__(
        self,
        spec: ProviderSpec,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: float = 0.7,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(spec)
        self._base_url = (base_url or self.DEFAULT_URL).rstrip("/")
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._temperature = temperature
        self._owns_client = client is None
        self._client = client or create_http_client(timeout_seconds=self._timeout)

    @property
    def supports_streaming(self) -> bool:
        return True

    # =========================================================================
    # complete()
    # =========================================================================

    async def complete(self, messages: list[Message]) -> str:
        """
        Generate a complete response (non-streaming).

        Raises:
            ProviderError: Connection failure, non-2xx status or bad JSON.
            GatewayTimeoutError: When the request times out.
        """
        payload = self._build_request(messages, stream=False)

        try:
            response = await self._client.post(f"{self._base_url}/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise GatewayTimeoutError(self.identifier, self._timeout) from e
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response, e) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Failed to connect to Ollama: {e}", provider=self.identifier, cause=e
            ) from e
        except json.JSONDecodeError as e:
            raise ProviderError(
                "Ollama returned a non-JSON response", provider=self.identifier, cause=e
            ) from e

        if not isinstance(data, dict):
            raise ProviderError("Ollama returned an unexpected payload", provider=self.identifier)
        if data.get("error"):
            raise ProviderError(f"Ollama error: {data['error']}", provider=self.identifier)

        message = data.get("message") or {}
        return message.get("content") or ""

    # =========================================================================
    # stream()
    # =========================================================================

    async def stream(self, messages: list[Message]) -> AsyncIterator[str]:
        """
        Yield content fragments as Ollama emits them.

        Malformed NDJSON lines are skipped. Closing the generator (consumer
        disconnect) exits the httpx stream context, which releases the
        connection and stops decoding.

        Raises:
            ProviderError: Connection failure, non-2xx status or an error
                object in the stream.
            GatewayTimeoutError: When the stream stalls past the timeout.
        """
        payload = self._build_request(messages, stream=True)

        try:
            async with self._client.stream(
                "POST", f"{self._base_url}/api/chat", json=payload
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise self._status_error(response)

                async for line in response.aiter_lines():
                    content = self._parse_stream_line(line)
                    if content:
                        yield content

        except httpx.TimeoutException as e:
            raise GatewayTimeoutError(self.identifier, self._timeout) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Ollama streaming failed: {e}", provider=self.identifier, cause=e
            ) from e

    # =========================================================================
    # is_available()
    # =========================================================================

    async def is_available(self) -> bool:
        """Ping /api/tags with a short timeout."""
        try:
            response = await self._client.get(
                f"{self._base_url}/api/tags", timeout=self.AVAILABILITY_TIMEOUT
            )
        except httpx.HTTPError as e:
            logger.debug(f"Ollama not reachable at {self._base_url}: {e}")
            return False
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _build_request(self, messages: list[Message], stream: bool) -> dict[str, Any]:
        return {
            "model": self.spec.model,
            "messages": [m.to_provider_dict() for m in messages],
            "stream": stream,
            "options": {"temperature": self._temperature},
        }

    def _parse_stream_line(self, line: str) -> Optional[str]:
        if not line.strip():
            return None

        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug(f"Skipping malformed Ollama stream line: {line[:80]!r}")
            return None

        if not isinstance(data, dict):
            return None
        if data.get("error"):
            raise ProviderError(f"Ollama error: {data['error']}", provider=self.identifier)

        message = data.get("message") or {}
        return message.get("content")

    def _status_error(
        self, response: httpx.Response, cause: Optional[BaseException] = None
    ) -> ProviderError:
        return ProviderError(
            f"Ollama request failed: {response.status_code} {response.reason_phrase}",
            provider=self.identifier,
            status_code=response.status_code,
            cause=cause,
        )
