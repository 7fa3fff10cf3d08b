"""Redis-based remote cache backend."""

import asyncio
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from pagecache.errors import BackendError
from pagecache.utils.logger import log_debug, log_info
from .base import CacheBackend


class RedisCacheBackend(CacheBackend):
    """Redis store with an out-of-band liveness channel.

    The client connects lazily, so construction never blocks or raises on an
    unreachable server. A monitor task pings the server as soon as an event
    loop is available and then every ``health_check_interval`` seconds; the
    first failed ping, or the first connection-level failure of a regular
    command, is reported once to the ``on_error`` listeners. ``rearm`` resumes
    watching when a listener could not act on the report.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        health_check_interval: float = 5.0,
        socket_timeout: float = 5.0,
        name: str = "redis",
    ):
        super().__init__(name)
        self.redis_url = redis_url
        self.health_check_interval = health_check_interval
        self.redis = Redis.from_url(
            redis_url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=False,  # values are opaque bytes
        )
        self._monitor: Optional[asyncio.Task] = None
        self._connection_lost = False
        self._closed = False
        self._start_monitor()

    @classmethod
    def from_config(cls, config) -> "RedisCacheBackend":
        backend = cls(
            redis_url=config.redis_url,
            health_check_interval=config.redis_health_check_interval,
            socket_timeout=config.redis_socket_timeout,
        )
        log_info("Redis cache backend created", redis_url=config.redis_url)
        return backend

    def _start_monitor(self, delay: float = 0.0) -> None:
        if self._monitor is not None or self._closed or self._connection_lost:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Started by the first operation instead
            return
        self._monitor = loop.create_task(self._watch_connection(delay))

    async def _watch_connection(self, delay: float = 0.0) -> None:
        if delay:
            await asyncio.sleep(delay)
        while not self._closed:
            try:
                await self.redis.ping()
            except (RedisError, OSError) as e:
                self._report_connection_lost(self._failure("ping", None, e))
                return
            await asyncio.sleep(self.health_check_interval)

    def _report_connection_lost(self, error: BackendError) -> None:
        if self._connection_lost or self._closed:
            return
        self._connection_lost = True
        self._emit_error(error)

    def rearm(self) -> None:
        """Watch the connection again after a reported loss went unhandled.

        The new monitor waits one interval before its first ping.
        """
        if self._closed:
            return
        self._connection_lost = False
        if self._monitor is not None and self._monitor is not asyncio.current_task():
            self._monitor.cancel()
        self._monitor = None
        self._start_monitor(delay=self.health_check_interval)

    def _command_failure(self, operation: str, key: str, exc: RedisError) -> BackendError:
        error = self._failure(operation, key, exc)
        if isinstance(exc, RedisConnectionError):
            self._report_connection_lost(error)
        return error

    async def get(self, key: str) -> Optional[bytes]:
        """Get value from Redis cache."""
        self._start_monitor()
        try:
            return await self.redis.get(key)
        except RedisError as e:
            raise self._command_failure("get", key, e) from e

    async def set(self, key: str, value: bytes) -> bool:
        """Set value in Redis cache."""
        self._start_monitor()
        try:
            await self.redis.set(key, value)
            return True
        except RedisError as e:
            raise self._command_failure("set", key, e) from e

    async def delete(self, key: str) -> bool:
        """Delete key from Redis cache."""
        self._start_monitor()
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            raise self._command_failure("delete", key, e) from e

    async def close(self) -> None:
        """Stop the liveness monitor and release the connection pool."""
        self._closed = True
        if self._monitor is not None and self._monitor is not asyncio.current_task():
            self._monitor.cancel()
        self._monitor = None
        await self.redis.aclose()
        log_debug("Redis cache backend closed", redis_url=self.redis_url)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **super().get_stats(),
            "redis_url": self.redis_url,
            "connection_lost": self._connection_lost,
        }
