"""
Providers Package - Chat Provider Adapters

This package contains the abstract provider interface and concrete
implementations for the supported providers (Ollama, OpenAI, Anthropic).

Reference Documents:
- GUIDELINES pp. 793-795: Repository pattern and ABC patterns
- GUIDELINES p. 953: @abstractmethod decorator usage
"""

from aidoc_gateway.providers.anthropic import AnthropicProvider
from aidoc_gateway.providers.base import ChatProvider, ProviderKind, ProviderSpec
from aidoc_gateway.providers.factory import create_provider, create_provider_chain
from aidoc_gateway.providers.ollama import OllamaProvider
from aidoc_gateway.providers.openai import OpenAIProvider

__all__ = [
    "ChatProvider",
    "ProviderKind",
    "ProviderSpec",
    "OllamaProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "create_provider",
    "create_provider_chain",
]
