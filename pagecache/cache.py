"""Page cache controller with TTL validation and automatic backend failover."""

import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

from pagecache.backends import BACKENDS, FAILOVER_TARGETS, BackendFactory, CacheBackend, create_backend
from pagecache.config import CacheClient, CacheConfig, get_config
from pagecache.envelope import CacheEntry, decode, encode, now_ms
from pagecache.errors import BackendError, CacheError, CacheMiss, CorruptEntry, NoValidEntry, StaleEntry
from pagecache.keys import derive_key
from pagecache.utils.logger import log_cache_event, log_debug, log_error, log_info, log_warning


class BackendState(Enum):
    """Failover states of the controller."""

    PRIMARY_ACTIVE = "primary_active"
    FALLBACK_ACTIVE = "fallback_active"


Producer = Callable[[], Union[Any, Awaitable[Any]]]


class Cache:
    """Serves cached pages from the active backend for ``cache_duration`` ms.

    The controller owns exactly one backend at a time. When the configured
    primary kind has a failover target (redis -> disk), the primary's
    out-of-band error channel is watched; the first reported error replaces it
    with a freshly built fallback and releases the old one. The switch is
    one-way. Calls racing the switch may be served by either backend.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        registry: Optional[Mapping[CacheClient, BackendFactory]] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config if config is not None else get_config()
        self._registry = dict(BACKENDS if registry is None else registry)
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()
        self._state = BackendState.PRIMARY_ACTIVE
        self._fallback_client = FAILOVER_TARGETS.get(self.config.cache_client)

        self.hits = 0
        self.misses = 0
        self.stale = 0
        self.corrupt = 0
        self.backend_errors = 0
        self.failovers = 0

        self._backend = create_backend(self.config, registry=self._registry)
        if self._fallback_client is not None:
            self._watch(self._backend)

        log_info(
            "Page cache initialized",
            backend=self._backend.name,
            fallback=self._fallback_client.value if self._fallback_client else None,
            cache_duration=self.config.cache_duration,
        )

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def backend_name(self) -> str:
        return self._backend.name

    # Keys and validity

    def derive_key(self, identifier: str, suffix: str = "") -> str:
        """Backend key for an identifier under the configured prefix."""
        return derive_key(identifier, suffix, prefix=self.config.cache_prefix)

    def is_valid(self, entry: CacheEntry, now: Optional[int] = None) -> bool:
        """True while the entry is younger than ``cache_duration``."""
        now = self._clock() if now is None else now
        return (now - entry.created) < self.config.cache_duration

    # Cache protocol

    async def get(self, identifier: str, suffix: str = "") -> CacheEntry:
        """Return the cached entry for an identifier.

        Raises:
            BackendError: the active backend failed
            CacheMiss: nothing is stored for the key
            CorruptEntry: stored bytes are not an envelope (entry is cleared)
            StaleEntry: entry is older than ``cache_duration`` (entry is cleared)
        """
        key = self.derive_key(identifier, suffix)
        try:
            raw = await self._backend.get(key)
        except BackendError:
            self.backend_errors += 1
            raise

        if raw is None:
            self.misses += 1
            log_cache_event("miss", identifier, key=key)
            raise CacheMiss(f"No cached entry for '{identifier}'", identifier=identifier, key=key)

        try:
            entry = decode(raw)
        except CorruptEntry as e:
            self.corrupt += 1
            log_cache_event("corrupt", identifier, key=key, reason=e.reason)
            await self._clear_quietly(identifier, suffix)
            raise CorruptEntry(
                f"Cached entry for '{identifier}' is corrupt",
                identifier=identifier,
                key=key,
                reason=e.reason,
            ) from e

        now = self._clock()
        if not self.is_valid(entry, now):
            self.stale += 1
            age = entry.age_ms(now)
            log_cache_event("stale", identifier, key=key, age_ms=age)
            await self._clear_quietly(identifier, suffix)
            raise StaleEntry(
                f"Cached entry for '{identifier}' expired",
                identifier=identifier,
                key=key,
                age_ms=age,
            )

        self.hits += 1
        log_cache_event("hit", identifier, key=key)
        return entry

    async def set(self, identifier: str, content: Any, suffix: str = "") -> bool:
        """Store content for an identifier, stamped with the current time.

        Raises:
            BackendError: the active backend failed
            InvalidContent: content is neither JSON-serializable nor bytes
        """
        key = self.derive_key(identifier, suffix)
        raw = encode(identifier, content, created=self._clock())
        try:
            return await self._backend.set(key, raw)
        except BackendError:
            self.backend_errors += 1
            raise

    async def clear(self, identifier: str, suffix: str = "") -> bool:
        """Remove the entry for an identifier; clearing nothing still succeeds."""
        key = self.derive_key(identifier, suffix)
        try:
            return await self._backend.delete(key)
        except BackendError:
            self.backend_errors += 1
            raise

    async def fetch(self, identifier: str, producer: Producer, suffix: str = "") -> Any:
        """Read-through helper: cached content, or produce, store and return it.

        ``producer`` may be a plain or an async callable. A failure to store
        the produced content is logged; the content is returned anyway.
        """
        try:
            entry = await self.get(identifier, suffix)
            return entry.content
        except NoValidEntry:
            pass
        except BackendError as e:
            log_warning("Cache read failed, producing content", identifier=identifier, error=str(e))

        content = producer()
        if inspect.isawaitable(content):
            content = await content

        try:
            await self.set(identifier, content, suffix)
        except BackendError as e:
            log_warning("Cache write failed", identifier=identifier, error=str(e))
        return content

    # Diagnostics

    async def check_health(self) -> Dict[str, Any]:
        """Probe the active backend with a set/get/delete round trip."""
        backend = self._backend
        probe_key = self.derive_key("__pagecache_health__")
        result = {"backend": backend.name, "state": self._state.value, "healthy": False, "error": None}
        try:
            await backend.set(probe_key, b"ok")
            healthy = await backend.get(probe_key) == b"ok"
            await backend.delete(probe_key)
            result["healthy"] = healthy
            if not healthy:
                result["error"] = "probe value did not round-trip"
        except BackendError as e:
            result["error"] = str(e)
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        reads = self.hits + self.misses + self.stale + self.corrupt
        return {
            "backend": self._backend.name,
            "state": self._state.value,
            "hits": self.hits,
            "misses": self.misses,
            "stale": self.stale,
            "corrupt": self.corrupt,
            "backend_errors": self.backend_errors,
            "failovers": self.failovers,
            "hit_rate_percent": (self.hits / reads * 100) if reads else 0.0,
            "pending_tasks": len(self._pending),
            "backend_stats": self._backend.get_stats(),
        }

    # Lifecycle

    async def wait_pending(self) -> None:
        """Wait for background releases of replaced backends to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Finish background work and close the active backend."""
        await self.wait_pending()
        await self._backend.close()
        log_info("Page cache closed", backend=self._backend.name)

    async def __aenter__(self) -> "Cache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Failover

    def _watch(self, backend: CacheBackend) -> None:
        backend.on_error(lambda error: self._on_backend_error(backend, error))

    def _on_backend_error(self, backend: CacheBackend, error: BackendError) -> None:
        if backend is not self._backend or self._state is not BackendState.PRIMARY_ACTIVE:
            log_debug("Ignoring error from inactive cache backend", backend=backend.name, error=str(error))
            return

        log_error("Primary cache backend failed", backend=backend.name, error=str(error))
        try:
            fallback = create_backend(self.config, client=self._fallback_client, registry=self._registry)
        except Exception as e:
            log_error(
                "Could not build fallback cache backend, keeping primary",
                fallback=self._fallback_client.value,
                error=str(e),
            )
            backend.rearm()
            return

        self._backend = fallback
        self._state = BackendState.FALLBACK_ACTIVE
        self.failovers += 1
        log_info("Switched to fallback cache backend", old_backend=backend.name, new_backend=fallback.name)
        self._spawn(self._release(backend))

    async def _release(self, backend: CacheBackend) -> None:
        try:
            await backend.close()
        except Exception as e:
            log_debug("Ignoring error while closing replaced backend", backend=backend.name, error=str(e))

    async def _clear_quietly(self, identifier: str, suffix: str) -> None:
        try:
            await self.clear(identifier, suffix)
        except CacheError as e:
            log_warning("Failed to clear invalid cache entry", identifier=identifier, error=str(e))

    def _spawn(self, coro: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            log_warning("No running event loop, background cache task dropped")
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
