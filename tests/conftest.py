"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests:
an in-memory chain behind a recording transport, an in-memory cache store
and a controllable clock.
"""

import pytest

from fakes import (
    EXTENSION_CENTER,
    JOIN,
    ROUND_VIEWER,
    FakeChain,
    FakeClock,
    FakeTransport,
)
from love20_toolkit.contracts.reader import ContractReader
from love20_toolkit.extensions.cache import ExtensionBindingCache
from love20_toolkit.extensions.resolver import ExtensionResolver
from love20_toolkit.shared.constants import ContractAddresses
from love20_toolkit.utils.cache import MemoryKeyValueStore, TTLCacheStore


@pytest.fixture
def contract_addresses() -> ContractAddresses:
    """Protocol contract addresses used by every fake read."""
    return ContractAddresses(
        extension_center=EXTENSION_CENTER,
        round_viewer=ROUND_VIEWER,
        join=JOIN,
    )


@pytest.fixture
def reader(contract_addresses) -> ContractReader:
    return ContractReader(contract_addresses)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def transport(chain) -> FakeTransport:
    return FakeTransport(chain)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def binding_cache(memory_store, clock) -> ExtensionBindingCache:
    """Extension binding cache over the in-memory store, 1h TTL."""
    return ExtensionBindingCache(
        TTLCacheStore(memory_store, "love20:extension:", ttl=3600, clock=clock)
    )


@pytest.fixture
def resolver(transport, reader, binding_cache) -> ExtensionResolver:
    return ExtensionResolver(transport, reader, binding_cache)


@pytest.fixture
def clean_love20_env(monkeypatch):
    """Keep developer .env values out of unit tests."""
    for name in (
        "LOVE20_EXTENSION_LP_FACTORY",
        "LOVE20_EXTENSION_GROUP_ACTION_FACTORY",
        "LOVE20_EXTENSION_GROUP_SERVICE_FACTORY",
        "LOVE20_ACTION_REWARD_MIN_VOTE_PER_THOUSAND",
        "LOVE20_CACHE_TTL",
    ):
        monkeypatch.delenv(name, raising=False)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line("markers", "slow: mark test as slow-running")
