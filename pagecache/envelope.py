"""Cache envelope: the ``{path, content, created}`` record stored per key."""

import base64
import binascii
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_serializer, field_validator
from pydantic_core import PydanticSerializationError

from pagecache.errors import CorruptEntry, InvalidContent

# Wire form of bytes content: {"__bytes__": "<base64>"}
BYTES_TAG = "__bytes__"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class CacheEntry(BaseModel):
    """A cached payload with its creation timestamp.

    ``path`` is kept for diagnostics only; lookups go through the hashed key.
    ``content`` is opaque to the cache. It must be JSON-serializable or a
    top-level ``bytes`` value, which is stored base64-encoded under
    ``BYTES_TAG`` and restored to ``bytes`` on decode.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    path: str
    content: Any
    created: int

    @field_validator("content", mode="before")
    @classmethod
    def restore_bytes(cls, value):
        if isinstance(value, dict) and list(value) == [BYTES_TAG] and isinstance(value[BYTES_TAG], str):
            try:
                return base64.b64decode(value[BYTES_TAG], validate=True)
            except binascii.Error as e:
                raise ValueError(f"invalid base64 payload: {e}")
        return value

    @field_serializer("content")
    def serialize_content(self, content):
        if isinstance(content, (bytes, bytearray)):
            return {BYTES_TAG: base64.b64encode(content).decode("ascii")}
        return content

    def age_ms(self, now: Optional[int] = None) -> int:
        """Milliseconds elapsed since the entry was written."""
        return (now_ms() if now is None else now) - self.created


def encode(path: str, content: Any, created: Optional[int] = None) -> bytes:
    """Wrap content in an envelope stamped with ``created`` (default: now).

    Raises:
        InvalidContent: if the content cannot be serialized to JSON.
    """
    entry = CacheEntry(
        path=path,
        content=content,
        created=now_ms() if created is None else created,
    )
    try:
        return entry.model_dump_json().encode("utf-8")
    except PydanticSerializationError as e:
        raise InvalidContent(f"Cannot cache content for '{path}': {e}") from e


def decode(raw: bytes) -> CacheEntry:
    """Parse stored bytes back into a CacheEntry.

    Raises:
        CorruptEntry: if the bytes are not a JSON object with exactly the
            ``path`` (str), ``content`` and ``created`` (int) fields.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    try:
        return CacheEntry.model_validate_json(raw)
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise CorruptEntry(f"Invalid cache envelope: {reasons}", reason=reasons) from e
    except ValueError as e:
        raise CorruptEntry(f"Unreadable cache envelope: {e}", reason=str(e)) from e
