"""Value serialization for cached payloads.

The cache treats payloads as opaque bytes; a serializer is injected.
The empty payload is reserved for tombstones, so a serializer must never
produce it.
"""

import json
from typing import Any, Protocol, TypeVar

V = TypeVar("V")


class Serializer(Protocol[V]):
    """Converts cached values to bytes and back."""

    def dumps(self, value: V) -> bytes: ...

    def loads(self, payload: bytes) -> V: ...


class JsonSerializer:
    """Stable JSON: sorted keys and compact separators, UTF-8 encoded."""

    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def loads(self, payload: bytes) -> Any:
        return json.loads(payload)
