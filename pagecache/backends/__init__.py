"""Cache backends and the registry that builds them by configured kind.

- redis: remote store, can fail over to disk
- disk: persistent file store, one file per key
- memory: in-process store for development and tests
"""

from typing import Callable, Dict, Mapping, Optional

from pagecache.config import CacheClient, CacheConfig
from .base import CacheBackend
from .file_cache import FileCacheBackend
from .memory_cache import MemoryCacheBackend
from .redis_cache import RedisCacheBackend

BackendFactory = Callable[[CacheConfig], CacheBackend]

BACKENDS: Dict[CacheClient, BackendFactory] = {
    CacheClient.REDIS: RedisCacheBackend.from_config,
    CacheClient.DISK: FileCacheBackend.from_config,
    CacheClient.MEMORY: MemoryCacheBackend.from_config,
}

# Where each kind goes when it reports a lost connection
FAILOVER_TARGETS: Dict[CacheClient, CacheClient] = {
    CacheClient.REDIS: CacheClient.DISK,
}


def create_backend(
    config: CacheConfig,
    client: Optional[CacheClient] = None,
    registry: Optional[Mapping[CacheClient, BackendFactory]] = None,
) -> CacheBackend:
    """Build the backend registered for ``client`` (default: the configured one)."""
    client = CacheClient(client or config.cache_client)
    factories = BACKENDS if registry is None else registry
    try:
        factory = factories[client]
    except KeyError:
        raise ValueError(f"No cache backend registered for '{client.value}'") from None
    return factory(config)


__all__ = [
    "BACKENDS",
    "FAILOVER_TARGETS",
    "CacheBackend",
    "FileCacheBackend",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "create_backend",
]
