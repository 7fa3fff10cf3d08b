"""File-based persistent cache backend."""

import asyncio
import hashlib
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from pagecache.utils.logger import log_info
from .base import CacheBackend


class FileCacheBackend(CacheBackend):
    """One file per key under ``cache_dir``.

    The directory is created on the first write, so building the backend
    never touches the filesystem.
    """

    def __init__(self, cache_dir: str = ".page_cache", name: str = "disk"):
        super().__init__(name)
        self.cache_dir = Path(cache_dir)
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> "FileCacheBackend":
        backend = cls(cache_dir=config.cache_dir)
        log_info("File cache backend created", cache_dir=config.cache_dir)
        return backend

    def _get_file_path(self, key: str) -> Path:
        """Get file path for cache key."""
        # Hash the key to avoid filesystem issues
        key_hash = hashlib.md5(key.encode("utf-8", "surrogatepass"), usedforsecurity=False).hexdigest()
        return self.cache_dir / f"cache_{key_hash}.entry"

    async def get(self, key: str) -> Optional[bytes]:
        """Get value from file cache."""
        async with self._lock:
            try:
                return self._get_file_path(key).read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                raise self._failure("get", key, e) from e

    async def set(self, key: str, value: bytes) -> bool:
        """Set value in file cache."""
        async with self._lock:
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                file_path = self._get_file_path(key)

                # Write to a sibling temp file and swap it in atomically
                fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp_")
                try:
                    with os.fdopen(fd, "wb") as f:
                        f.write(value)
                    os.replace(tmp_name, file_path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
                return True

            except OSError as e:
                raise self._failure("set", key, e) from e

    async def delete(self, key: str) -> bool:
        """Delete key from file cache."""
        async with self._lock:
            try:
                self._get_file_path(key).unlink(missing_ok=True)
                return True
            except OSError as e:
                raise self._failure("delete", key, e) from e

    async def close(self) -> None:
        """Nothing is held open between operations."""

    def get_stats(self) -> Dict[str, Any]:
        """Get file cache statistics."""
        files = list(self.cache_dir.glob("cache_*.entry")) if self.cache_dir.is_dir() else []
        return {
            **super().get_stats(),
            "cache_dir": str(self.cache_dir),
            "size": len(files),
            "disk_usage_bytes": sum(f.stat().st_size for f in files),
        }
