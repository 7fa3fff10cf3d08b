"""Pytest configuration and fixtures for pagecache tests."""

import pytest
import pytest_asyncio

# Add the project root to the Python path
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pagecache.backends import FileCacheBackend, MemoryCacheBackend
from pagecache.cache import Cache
from pagecache.config import CacheClient, CacheConfig
from pagecache.errors import BackendError

T0 = 1_700_000_000_000


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeRemoteBackend(MemoryCacheBackend):
    """In-memory stand-in for Redis that can report a lost connection."""

    def __init__(self, name: str = "fake-redis"):
        super().__init__(name=name)
        self.closed = False
        self.rearmed = 0

    def lose_connection(self, message: str = "Connection closed by server.") -> None:
        self._emit_error(BackendError(message, backend=self.name, operation="ping"))

    def rearm(self) -> None:
        self.rearmed += 1

    async def close(self) -> None:
        self.closed = True
        await super().close()


class FailingBackend(MemoryCacheBackend):
    """Backend whose every operation fails like a broken store."""

    async def get(self, key):
        raise self._failure("get", key, OSError("disk unavailable"))

    async def set(self, key, value):
        raise self._failure("set", key, OSError("disk unavailable"))

    async def delete(self, key):
        raise self._failure("delete", key, OSError("disk unavailable"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_config(tmp_path):
    """Build a CacheConfig isolated to the test's temp directory."""

    def _make(**overrides):
        settings = {
            "cache_client": CacheClient.MEMORY,
            "cache_dir": str(tmp_path / "cache"),
            "cache_duration": 1000,
            "cache_prefix": "test:",
        }
        settings.update(overrides)
        return CacheConfig(**settings)

    return _make


@pytest_asyncio.fixture
async def memory_cache(make_config, clock):
    """Cache over the memory backend with a fake clock."""
    cache = Cache(make_config(), clock=clock)
    yield cache
    await cache.close()


@pytest.fixture
def remote_registry():
    """Registry whose redis slot builds a FakeRemoteBackend.

    The built instances are collected in ``registry.built`` for inspection.
    """

    class Registry(dict):
        pass

    registry = Registry()
    registry.built = []

    def _remote(config):
        backend = FakeRemoteBackend()
        registry.built.append(backend)
        return backend

    def _disk(config):
        backend = FileCacheBackend(cache_dir=config.cache_dir)
        registry.built.append(backend)
        return backend

    registry[CacheClient.REDIS] = _remote
    registry[CacheClient.DISK] = _disk
    registry[CacheClient.MEMORY] = MemoryCacheBackend.from_config
    return registry


@pytest_asyncio.fixture
async def failover_cache(make_config, remote_registry, clock):
    """Cache whose primary is a fake remote backend with disk fallback."""
    cache = Cache(make_config(cache_client=CacheClient.REDIS), registry=remote_registry, clock=clock)
    yield cache
    await cache.close()


@pytest.fixture
def failing_registry(remote_registry):
    """Registry whose memory slot builds a backend that always fails."""
    registry = remote_registry
    registry[CacheClient.MEMORY] = lambda config: FailingBackend(name="broken")
    return registry
