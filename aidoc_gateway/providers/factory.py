"""
Provider Factory - Builds the provider chain from settings.

The chain is the primary model followed by the fallback models, in order.
Each entry is parsed into a ProviderSpec and dispatched on its kind; adapters
for cloud providers are built even without credentials so they report
themselves unavailable instead of disappearing from the chain.
"""

import logging
from typing import TYPE_CHECKING

from aidoc_gateway.core.exceptions import ConfigurationError
from aidoc_gateway.providers.anthropic import AnthropicProvider
from aidoc_gateway.providers.base import ChatProvider, ProviderKind, ProviderSpec
from aidoc_gateway.providers.ollama import OllamaProvider
from aidoc_gateway.providers.openai import OpenAIProvider

if TYPE_CHECKING:
    from aidoc_gateway.core.config import Settings

logger = logging.getLogger(__name__)


def create_provider(spec: ProviderSpec, settings: "Settings") -> ChatProvider:
    """
    Instantiate the adapter for one chain entry.

    Raises:
        ConfigurationError: If the kind has no adapter.
    """
    if spec.kind is ProviderKind.OLLAMA:
        return OllamaProvider(
            spec,
            base_url=settings.ollama_url,
            timeout=settings.request_timeout_seconds,
            temperature=settings.temperature,
        )

    if spec.kind is ProviderKind.OPENAI:
        return OpenAIProvider(
            spec,
            api_key=settings.openai_api_key.get_secret_value(),
            timeout=settings.request_timeout_seconds,
            temperature=settings.temperature,
        )

    if spec.kind is ProviderKind.ANTHROPIC:
        return AnthropicProvider(
            spec,
            api_key=settings.anthropic_api_key.get_secret_value(),
            timeout=settings.request_timeout_seconds,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )

    raise ConfigurationError(f"No adapter for provider kind '{spec.kind.value}'")


def create_provider_chain(settings: "Settings") -> list[ChatProvider]:
    """
    Build [primary, *fallbacks] from settings.

    Returns:
        Providers in chain order.

    Raises:
        ConfigurationError: If an identifier cannot be parsed.
    """
    identifiers = [settings.primary_model, *settings.fallback_models]
    chain = [create_provider(ProviderSpec.parse(identifier), settings) for identifier in identifiers]

    logger.info(f"Provider chain initialized with: {[p.identifier for p in chain]}")
    return chain
