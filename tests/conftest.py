"""
Pytest configuration and shared fixtures.

Reference Documents:
- GUIDELINES pp. 155-157: "high and low gear" testing philosophy
- GUIDELINES pp. 157: FakeRepository pattern using duck typing
- GUIDELINES pp. 242 (Newman): AI tests require mocks simulating varying response times,
  occasional failures, and context-dependent outputs

This configuration sets up:
- A controllable monotonic clock for breaker and cache time travel
- Fake chat providers that follow the ChatProvider contract
- Settings that never touch a real provider
"""

from typing import AsyncIterator, Optional

import pytest

from aidoc_gateway.core.config import Settings
from aidoc_gateway.models.domain import Message
from aidoc_gateway.providers.base import ChatProvider, ProviderSpec


# =============================================================================
# Fake Clock
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Fake Providers (FakeRepository pattern)
# =============================================================================


class FakeProvider(ChatProvider):
    """
    Scripted ChatProvider.

    ``responses`` is consumed in order; an Exception item is raised instead
    of returned. When the script runs out the last item repeats.
    """

    def __init__(
        self,
        identifier: str = "ollama/llama3.2",
        responses: Optional[list] = None,
        available: bool = True,
        streaming: bool = False,
        chunks: Optional[list[str]] = None,
    ) -> None:
        super().__init__(ProviderSpec.parse(identifier))
        self._responses = list(responses if responses is not None else ["ok"])
        self._available = available
        self._streaming = streaming
        self._chunks = chunks or []
        self.calls: list[list[Message]] = []
        self.stream_closed = False
        self.closed = False

    @property
    def supports_streaming(self) -> bool:
        return self._streaming

    async def complete(self, messages: list[Message]) -> str:
        self.calls.append(messages)
        index = min(len(self.calls) - 1, len(self._responses) - 1)
        item = self._responses[index]
        if isinstance(item, BaseException):
            raise item
        return item

    async def stream(self, messages: list[Message]) -> AsyncIterator[str]:
        self.calls.append(messages)
        try:
            for chunk in self._chunks:
                if isinstance(chunk, BaseException):
                    raise chunk
                yield chunk
        finally:
            self.stream_closed = True

    async def is_available(self) -> bool:
        return self._available

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_provider() -> type[FakeProvider]:
    """Factory for scripted providers: make_provider("openai/gpt-4o", responses=[...])."""
    return FakeProvider


@pytest.fixture
def user_messages() -> list[Message]:
    return [Message(role="user", content="hi")]


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings built explicitly so the test environment cannot leak in."""
    return Settings(
        _env_file=None,
        primary_model="ollama/llama3.2",
        fallback_models=["openai/gpt-4o-mini"],
        cache_ttl_seconds=300,
    )
