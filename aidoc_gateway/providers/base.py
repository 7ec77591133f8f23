"""
Provider Base Interface

This module defines the provider kinds the gateway can talk to and the
abstract base class every provider adapter implements.

Design Pattern:
- Ports and Adapters (Hexagonal Architecture)
- ChatProvider serves as the "port" (interface)
- OllamaProvider / OpenAIProvider / AnthropicProvider serve as "adapters"

A provider chain entry is a ProviderSpec: a (kind, model) pair parsed once
from configuration. Dispatch to an adapter is an explicit match on the kind
(see providers.factory), never string splitting at call time.

Reference Documents:
- GUIDELINES pp. 793-795: Repository pattern and ABC patterns
- GUIDELINES p. 2149: Iterator protocol for streaming responses
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator

from aidoc_gateway.core.exceptions import ConfigurationError
from aidoc_gateway.models.domain import Message


# =============================================================================
# Provider Kinds
# =============================================================================


class ProviderKind(str, Enum):
    """Supported provider kinds."""

    OLLAMA = "ollama"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class ProviderSpec:
    """
    One entry of the provider chain.

    Attributes:
        kind: Which adapter handles the model
        model: Provider-native model name (may itself contain "/")
    """

    kind: ProviderKind
    model: str

    @classmethod
    def parse(cls, identifier: str) -> "ProviderSpec":
        """
        Parse a "<provider>/<model>" identifier.

        Only the first "/" separates kind from model, so
        "ollama/library/llama3" has model "library/llama3".

        Raises:
            ConfigurationError: On a missing separator, empty model or
                unknown provider kind
        """
        kind_name, sep, model = identifier.strip().partition("/")
        if not sep or not model:
            raise ConfigurationError(
                f"Model identifier '{identifier}' must look like '<provider>/<model>'"
            )

        try:
            kind = ProviderKind(kind_name.lower())
        except ValueError:
            supported = ", ".join(k.value for k in ProviderKind)
            raise ConfigurationError(
                f"Unsupported provider '{kind_name}' in '{identifier}' "
                f"(supported: {supported})"
            ) from None

        return cls(kind=kind, model=model)

    @property
    def identifier(self) -> str:
        """Canonical "<provider>/<model>" form."""
        return f"{self.kind.value}/{self.model}"

    def __str__(self) -> str:
        return self.identifier


# =============================================================================
# ChatProvider ABC
# =============================================================================


class ChatProvider(ABC):
    """
    Abstract base class for chat provider adapters.

    Implementations raise only core taxonomy errors: ProviderError for
    rejected or unusable responses and GatewayTimeoutError for deadlines.

    Example:
        >>> provider = OllamaProvider(ProviderSpec.parse("ollama/llama3.2"))
        >>> text = await provider.complete([Message(role="user", content="hi")])
    """

    def __init__(self, spec: ProviderSpec) -> None:
        self._spec = spec

    @property
    def spec(self) -> ProviderSpec:
        """The chain entry this adapter serves."""
        return self._spec

    @property
    def identifier(self) -> str:
        """Provider identity used in errors, logs and metrics."""
        return self._spec.identifier

    @property
    def supports_streaming(self) -> bool:
        """Whether stream() yields incremental chunks."""
        return False

    @abstractmethod
    async def complete(self, messages: list[Message]) -> str:
        """
        Generate a complete response (non-streaming).

        Args:
            messages: Conversation, oldest first

        Returns:
            The assistant's reply text.

        Raises:
            ProviderError: If the provider rejects the request or replies
                with something unusable
            GatewayTimeoutError: If the provider does not answer in time
        """
        ...

    async def stream(self, messages: list[Message]) -> AsyncIterator[str]:
        """
        Yield response text fragments in provider emission order.

        Providers without native streaming yield the complete response as a
        single chunk.
        """
        yield await self.complete(messages)

    @abstractmethod
    async def is_available(self) -> bool:
        """Provider-specific reachability check. Never raises."""
        ...

    async def aclose(self) -> None:
        """Release transport resources held by the adapter."""
        return None
