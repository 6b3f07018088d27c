"""
Shared pytest fixtures for cache-stats tests.

The fake handles below mimic the three storage conventions without a server. Attributes
set to None are treated as absent by capability detection.
"""

import fnmatch

import pytest


class FakeKeyValue:
    """Async key-value surface backed by a dict."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.get_calls = []

    async def keys(self, pattern):
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    async def mget(self, keys):
        return [self.data.get(k) for k in keys]

    async def get(self, key):
        self.get_calls.append(key)
        return self.data.get(key)


class FakeClientWithoutMget(FakeKeyValue):
    mget = None


class RetryingStorage:
    """Clustered convention: nested ``client`` plus a ``with_retry`` wrapper."""

    def __init__(self, client):
        self.client = client
        self.retry_calls = 0
        self.cleared = []

    async def with_retry(self, operation):
        self.retry_calls += 1
        return await operation()

    async def clear_expired_cache(self, prefix=None):
        self.cleared.append(prefix)


class ServerlessStorage(FakeKeyValue):
    """Serverless convention: ``keys``/``mget``/``get`` at top level."""

    def __init__(self, data=None):
        super().__init__(data)
        self.cleared = []

    async def clear_expired_cache(self, prefix=None):
        self.cleared.append(prefix)


class ServerlessStorageWithoutMget(ServerlessStorage):
    mget = None


class BareGetStorage:
    """Degraded convention: single-item ``get`` only."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.cleared = []

    async def get(self, key):
        return self.data.get(key)

    async def clear_expired_cache(self, prefix=None):
        self.cleared.append(prefix)


class OpaqueStorage:
    """Exposes nothing this library recognises."""

    def set(self, key, value):
        pass


class UnreachableStorage:
    """A façade whose lazily connected ``client`` fails on first access."""

    @property
    def client(self):
        raise ConnectionRefusedError("connect failed")


def scenario_values():
    """Five cache keys: three categories plus one unrelated entry."""
    return {
        "cache:douban-movie-1": "m" * 10,
        "cache:douban-tv-1": "t" * 20,
        "cache:danmu-cache-x": "d" * 5,
        "cache:netdisk-search-y": "n" * 7,
        "cache:unrelated-z": "u" * 100,
    }


@pytest.fixture
def scenario_data():
    return scenario_values()


@pytest.fixture
def retrying_storage(scenario_data):
    return RetryingStorage(FakeKeyValue(scenario_data))


@pytest.fixture
def serverless_storage(scenario_data):
    return ServerlessStorage(scenario_data)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "redis: tests for the Redis-backed storage handle (mocked, no server)")
