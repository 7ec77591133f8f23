"""
API test fixtures.

The application is built with create_app() and pre-built collaborators, so
the lifespan runs for real but never constructs network-backed providers.
"""

from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from aidoc_gateway.main import create_app
from aidoc_gateway.resilience.registry import CircuitBreakerRegistry
from aidoc_gateway.services.cache import ResponseCache
from aidoc_gateway.services.gateway import ProviderGateway


@pytest.fixture
def registry(clock) -> CircuitBreakerRegistry:
    return CircuitBreakerRegistry.with_defaults(clock=clock)


@pytest.fixture
def primary(make_provider):
    return make_provider("ollama/llama3.2", responses=["Your sleep looks steady."])


@pytest.fixture
def gateway(primary, registry, clock) -> ProviderGateway:
    return ProviderGateway(
        [primary],
        cache=ResponseCache(clock=clock),
        breaker=registry.get("ai"),
    )


@pytest.fixture
def app(settings, registry, gateway) -> FastAPI:
    return create_app(settings=settings, registry=registry, gateway=gateway)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
