"""Exceptions raised by the page cache.

``NoValidEntry`` and its subclasses all mean "there is no usable cached value,
recompute and store it again". ``BackendError`` means the store itself failed.
"""
from typing import Optional


class CacheError(Exception):
    """Base class for every page cache error."""


class BackendError(CacheError):
    """A backend adapter failed (connection lost, I/O error, ...)."""

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.operation = operation
        self.key = key


class NoValidEntry(CacheError):
    """No usable cached value exists for an identifier."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.identifier = identifier
        self.key = key


class CacheMiss(NoValidEntry):
    """Nothing is stored under the derived key."""


class StaleEntry(NoValidEntry):
    """An entry exists but is older than the configured cache duration."""

    def __init__(self, message: str, identifier=None, key=None, age_ms: Optional[int] = None):
        super().__init__(message, identifier=identifier, key=key)
        self.age_ms = age_ms


class CorruptEntry(NoValidEntry):
    """Stored bytes do not decode into a cache envelope."""

    def __init__(self, message: str, identifier=None, key=None, reason: Optional[str] = None):
        super().__init__(message, identifier=identifier, key=key)
        self.reason = reason or message


class InvalidContent(CacheError):
    """Content cannot be serialized into a cache envelope."""
