"""Abstract base class for cache backends."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from pagecache.errors import BackendError
from pagecache.utils.logger import log_error

ErrorListener = Callable[[BackendError], None]


class CacheBackend(ABC):
    """Uniform key/value contract every store is adapted to.

    Values are opaque bytes. ``get`` returns ``None`` for an absent key and
    raises ``BackendError`` when the store itself fails, so "not found" and
    "broken" stay distinguishable. Stores that can lose their connection
    report it out of band through the listeners registered with ``on_error``.
    """

    def __init__(self, name: str):
        self.name = name
        self.errors = 0
        self._error_listeners: List[ErrorListener] = []

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get raw value by key, ``None`` if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> bool:
        """Store raw value under key."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key; deleting a missing key still succeeds."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close cache backend and cleanup resources."""
        pass

    def on_error(self, listener: ErrorListener) -> None:
        """Register a listener for out-of-band backend failures."""
        self._error_listeners.append(listener)

    def rearm(self) -> None:
        """Allow a failure that was already reported to be reported again."""

    def _emit_error(self, error: BackendError) -> None:
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                log_error("Backend error listener failed", backend=self.name, error=str(e))

    def _failure(self, operation: str, key: Optional[str], exc: BaseException) -> BackendError:
        """Wrap a native exception and count it."""
        self.errors += 1
        return BackendError(
            f"{self.name} {operation} failed: {exc}",
            backend=self.name,
            operation=operation,
            key=key,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get backend statistics."""
        return {"backend": self.name, "errors": self.errors}
