"""In-memory cache backend."""

import asyncio
from typing import Any, Dict, Optional

from .base import CacheBackend


class MemoryCacheBackend(CacheBackend):
    """Process-local dict store, for development and tests."""

    def __init__(self, name: str = "memory"):
        super().__init__(name)
        self.store: Dict[str, bytes] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> "MemoryCacheBackend":
        return cls()

    async def get(self, key: str) -> Optional[bytes]:
        async with self._lock:
            return self.store.get(key)

    async def set(self, key: str, value: bytes) -> bool:
        async with self._lock:
            self.store[key] = bytes(value)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            self.store.pop(key, None)
            return True

    async def close(self) -> None:
        async with self._lock:
            self.store.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {**super().get_stats(), "size": len(self.store)}
