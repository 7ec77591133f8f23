"""AIDOC Gateway - Source Package.

Resilient multi-provider AI gateway: circuit breakers, retry, response
caching and a provider fallback chain in front of Ollama, OpenAI and
Anthropic.

Note: Import `app` directly from `aidoc_gateway.main` to avoid circular imports.
"""

__all__ = ["main", "api", "core", "models", "providers", "resilience", "services"]
