"""
Tests for OllamaProvider

Uses httpx.MockTransport so no Ollama instance is needed.

This module tests:
- Request payload sent to /api/chat
- complete() response parsing and error mapping
- stream() NDJSON decoding, malformed-line skipping and error objects
- is_available() ping
"""

import json

import httpx
import pytest

from aidoc_gateway.core.exceptions import GatewayTimeoutError, ProviderError
from aidoc_gateway.models.domain import Message
from aidoc_gateway.providers.base import ProviderSpec
from aidoc_gateway.providers.ollama import OllamaProvider

BASE_URL = "http://ollama.test:11434"


def _provider(handler) -> OllamaProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaProvider(
        ProviderSpec.parse("ollama/llama3.2"),
        base_url=BASE_URL,
        temperature=0.3,
        client=client,
    )


def _ndjson(*objects) -> bytes:
    return "\n".join(o if isinstance(o, str) else json.dumps(o) for o in objects).encode()


@pytest.fixture
def messages() -> list[Message]:
    return [
        Message(role="system", content="be brief"),
        Message(role="user", content="hi"),
    ]


# =============================================================================
# complete()
# =============================================================================


class TestOllamaComplete:
    """Tests for the non-streaming call."""

    @pytest.mark.asyncio
    async def test_sends_model_messages_and_options(self, messages) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "hey"}})

        result = await _provider(handler).complete(messages)

        assert result == "hey"
        assert seen["url"] == f"{BASE_URL}/api/chat"
        assert seen["body"] == {
            "model": "llama3.2",
            "messages": [
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hi"},
            ],
            "stream": False,
            "options": {"temperature": 0.3},
        }

    @pytest.mark.asyncio
    async def test_missing_content_is_empty_string(self, messages) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"done": True}))

        assert await provider.complete(messages) == ""

    @pytest.mark.asyncio
    async def test_http_status_error(self, messages) -> None:
        provider = _provider(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(ProviderError) as exc_info:
            await provider.complete(messages)

        assert exc_info.value.status_code == 500
        assert exc_info.value.provider == "ollama/llama3.2"

    @pytest.mark.asyncio
    async def test_error_field(self, messages) -> None:
        provider = _provider(
            lambda request: httpx.Response(200, json={"error": "model 'llama3.2' not found"})
        )

        with pytest.raises(ProviderError, match="not found"):
            await provider.complete(messages)

    @pytest.mark.asyncio
    async def test_non_json_body(self, messages) -> None:
        provider = _provider(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ProviderError, match="non-JSON"):
            await provider.complete(messages)

    @pytest.mark.asyncio
    async def test_connection_error(self, messages) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await _provider(handler).complete(messages)

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_timeout(self, messages) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GatewayTimeoutError):
            await _provider(handler).complete(messages)


# =============================================================================
# stream()
# =============================================================================


class TestOllamaStream:
    """Tests for NDJSON streaming."""

    @pytest.mark.asyncio
    async def test_yields_content_in_order(self, messages) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                content=_ndjson(
                    {"message": {"content": "Hel"}},
                    {"message": {"content": "lo"}},
                    {"message": {"content": ""}, "done": True},
                ),
            )

        chunks = [c async for c in _provider(handler).stream(messages)]

        assert chunks == ["Hel", "lo"]
        assert seen["body"]["stream"] is True

    @pytest.mark.asyncio
    async def test_malformed_lines_skipped(self, messages) -> None:
        body = _ndjson(
            {"message": {"content": "a"}},
            "{not json",
            "",
            {"message": {"content": "b"}},
        )
        provider = _provider(lambda request: httpx.Response(200, content=body))

        assert [c async for c in provider.stream(messages)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_error_object_raises(self, messages) -> None:
        body = _ndjson({"message": {"content": "a"}}, {"error": "out of memory"})
        provider = _provider(lambda request: httpx.Response(200, content=body))
        received = []

        with pytest.raises(ProviderError, match="out of memory"):
            async for chunk in provider.stream(messages):
                received.append(chunk)

        assert received == ["a"]

    @pytest.mark.asyncio
    async def test_error_status_raises_before_yielding(self, messages) -> None:
        provider = _provider(lambda request: httpx.Response(404, text="model not found"))

        with pytest.raises(ProviderError) as exc_info:
            async for _ in provider.stream(messages):
                pass

        assert exc_info.value.status_code == 404


# =============================================================================
# is_available() / aclose()
# =============================================================================


class TestOllamaAvailability:
    """Tests for the reachability ping and transport ownership."""

    @pytest.mark.asyncio
    async def test_available_when_tags_respond(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json={"models": []})

        assert await _provider(handler).is_available() is True

    @pytest.mark.asyncio
    async def test_unavailable_on_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert await _provider(handler).is_available() is False

    @pytest.mark.asyncio
    async def test_unavailable_on_error_status(self) -> None:
        provider = _provider(lambda request: httpx.Response(503))

        assert await provider.is_available() is False

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        provider = OllamaProvider(ProviderSpec.parse("ollama/llama3.2"), client=client)

        await provider.aclose()

        assert client.is_closed is False
        await client.aclose()

    def test_supports_streaming(self) -> None:
        provider = _provider(lambda request: httpx.Response(200))

        assert provider.supports_streaming is True
