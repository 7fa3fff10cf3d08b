"""Page cache with TTL validation and redis-to-disk failover.

Cached pages are stored under hashed keys as ``{path, content, created}``
envelopes. Reads older than the configured cache duration are reported as
stale and cleared. When the Redis backend loses its connection the cache
switches to the disk backend for the rest of the process lifetime.
"""

from .cache import BackendState, Cache
from .config import CacheClient, CacheConfig, get_config, reload_config
from .envelope import CacheEntry, decode, encode
from .errors import BackendError, CacheError, CacheMiss, CorruptEntry, InvalidContent, NoValidEntry, StaleEntry
from .keys import derive_key

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "BackendState",
    "Cache",
    "CacheClient",
    "CacheConfig",
    "CacheEntry",
    "CacheError",
    "CacheMiss",
    "CorruptEntry",
    "InvalidContent",
    "NoValidEntry",
    "StaleEntry",
    "decode",
    "derive_key",
    "encode",
    "get_config",
    "reload_config",
]
