"""
Circuit Breaker Registry

Named set of circuit breakers, one per external dependency. The registry is
constructed once at startup (see main.lifespan) and handed to every
component that needs resilience, instead of living in module globals.

Standard dependencies:
    ai          AI providers (slow; long call timeout)
    oura_api    Oura cloud API
    health_kit  Apple HealthKit bridge
    database    Health record storage
"""

import logging
from typing import Callable, Iterator, Mapping, Optional

from aidoc_gateway.core.config import BreakerOverride, Settings
from aidoc_gateway.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from aidoc_gateway.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)


# =============================================================================
# Standard Dependencies
# =============================================================================

BREAKER_AI = "ai"
BREAKER_OURA_API = "oura_api"
BREAKER_HEALTH_KIT = "health_kit"
BREAKER_DATABASE = "database"

DEFAULT_BREAKER_CONFIGS: dict[str, CircuitBreakerConfig] = {
    BREAKER_AI: CircuitBreakerConfig(
        failure_threshold=3,
        reset_timeout_seconds=60.0,
        success_threshold=2,
        call_timeout_seconds=30.0,
    ),
    BREAKER_OURA_API: CircuitBreakerConfig(
        failure_threshold=5,
        reset_timeout_seconds=30.0,
        success_threshold=2,
        call_timeout_seconds=10.0,
    ),
    BREAKER_HEALTH_KIT: CircuitBreakerConfig(
        failure_threshold=3,
        reset_timeout_seconds=15.0,
        success_threshold=1,
        call_timeout_seconds=5.0,
    ),
    BREAKER_DATABASE: CircuitBreakerConfig(
        failure_threshold=3,
        reset_timeout_seconds=10.0,
        success_threshold=1,
        call_timeout_seconds=5.0,
    ),
}

CHAIN_TIMEOUT_HEADROOM_SECONDS = 1.0


def provider_chain_timeout(settings: Settings) -> float:
    """
    Worst-case duration of one pass over the provider chain.

    Every provider may use its full request timeout on each attempt plus the
    retry backoff in between, and the chain is primary plus fallbacks.
    """
    attempts = settings.provider_max_retries + 1
    backoff = sum(RetryPolicy(max_retries=settings.provider_max_retries).delays())
    per_provider = settings.request_timeout_seconds * attempts + backoff
    chain_length = 1 + len(settings.fallback_models)
    return per_provider * chain_length + CHAIN_TIMEOUT_HEADROOM_SECONDS


# =============================================================================
# Registry
# =============================================================================


class CircuitBreakerRegistry:
    """
    Registry of named circuit breakers.

    Example:
        >>> registry = CircuitBreakerRegistry.with_defaults()
        >>> await registry.get("ai").execute(call_provider)
        >>> registry.get_all_stats()["ai"]["state"]
        'CLOSED'
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        """
        Initialize an empty registry.

        Args:
            clock: Monotonic clock passed to every breaker this registry creates
        """
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    @classmethod
    def with_defaults(
        cls,
        overrides: Optional[Mapping[str, BreakerOverride]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "CircuitBreakerRegistry":
        """
        Create a registry holding the standard dependency breakers.

        Overrides for names that are not standard dependencies register an
        additional breaker built from the library defaults.

        Args:
            overrides: Per-name overrides (unset fields keep defaults)
            clock: Optional monotonic clock for every breaker
        """
        registry = cls(clock=clock)
        overrides = overrides or {}

        for name, config in DEFAULT_BREAKER_CONFIGS.items():
            override = overrides.get(name)
            if override is not None:
                config = config.with_overrides(**override.as_kwargs())
            registry.register(name, config)

        for name, override in overrides.items():
            if name not in registry:
                registry.register(
                    name, CircuitBreakerConfig().with_overrides(**override.as_kwargs())
                )

        return registry

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clock: Optional[Callable[[], float]] = None,
    ) -> "CircuitBreakerRegistry":
        """
        Create the standard registry with overrides from settings.

        The 'ai' breaker wraps the whole provider chain, so its call timeout
        is raised to provider_chain_timeout(settings) when it is shorter.
        """
        overrides = dict(settings.breaker_overrides)
        ai_override = overrides.get(BREAKER_AI, BreakerOverride())
        ai_config = DEFAULT_BREAKER_CONFIGS[BREAKER_AI].with_overrides(
            **ai_override.as_kwargs()
        )

        chain_timeout = provider_chain_timeout(settings)
        if ai_config.call_timeout_seconds < chain_timeout:
            logger.info(
                f"Raising '{BREAKER_AI}' call timeout from "
                f"{ai_config.call_timeout_seconds}s to {chain_timeout}s "
                f"to cover the provider chain",
                extra={"circuit": BREAKER_AI},
            )
            overrides[BREAKER_AI] = ai_override.model_copy(
                update={"call_timeout_seconds": chain_timeout}
            )

        return cls.with_defaults(overrides, clock=clock)

    # =========================================================================
    # Registration and Lookup
    # =========================================================================

    def register(
        self, name: str, config: Optional[CircuitBreakerConfig] = None
    ) -> CircuitBreaker:
        """
        Create and register a breaker.

        Raises:
            ValueError: If a breaker with this name already exists
        """
        if name in self._breakers:
            raise ValueError(f"Circuit breaker '{name}' is already registered")

        breaker = CircuitBreaker(name=name, config=config, clock=self._clock)
        self._breakers[name] = breaker
        logger.debug(f"Registered circuit breaker '{name}'", extra={"circuit": name})
        return breaker

    def get(self, name: str) -> CircuitBreaker:
        """
        Look up a breaker by name.

        Raises:
            KeyError: If no breaker has that name
        """
        try:
            return self._breakers[name]
        except KeyError:
            raise KeyError(f"Unknown circuit breaker '{name}'") from None

    def get_or_create(
        self, name: str, config: Optional[CircuitBreakerConfig] = None
    ) -> CircuitBreaker:
        """Return the named breaker, registering it first if needed."""
        if name in self._breakers:
            return self._breakers[name]
        return self.register(name, config)

    def names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._breakers)

    def __contains__(self, name: object) -> bool:
        return name in self._breakers

    def __iter__(self) -> Iterator[CircuitBreaker]:
        return iter(list(self._breakers.values()))

    def __len__(self) -> int:
        return len(self._breakers)

    # =========================================================================
    # Observability and Operator Actions
    # =========================================================================

    def get_all_stats(self) -> dict[str, dict]:
        """Stats of every breaker, keyed by name, for the health-status endpoint."""
        return {name: breaker.get_stats().to_dict() for name, breaker in self._breakers.items()}

    async def reset(self, name: str) -> None:
        """Force one breaker CLOSED."""
        await self.get(name).reset()

    async def reset_all(self) -> None:
        """Force every breaker CLOSED."""
        for breaker in self:
            await breaker.reset()
