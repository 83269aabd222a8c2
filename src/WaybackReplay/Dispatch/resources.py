"""Resource handles consumed by media-type resolution and renderer selectors.

Concrete resources are supplied by the byte storage backend; this module only
defines the protocol the dispatch layer relies on, a composite adapter used for
revisit records, and a small in-memory implementation.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class Resource(Protocol):
    """Archived response: recorded HTTP headers plus payload bytes."""

    @property
    def headers(self) -> Mapping[str, str]: ...

    def get_header(self, name: str) -> Optional[str]: ...

    def peek(self, size: int) -> bytes: ...

    def read(self, size: int = -1) -> bytes: ...


def _lookup_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""

    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class BytesResource:
    """In-memory resource backed by a header mapping and a byte string."""

    def __init__(self, payload: bytes = b"", headers: Optional[Mapping[str, str]] = None) -> None:
        self._payload = bytes(payload)
        self._headers = dict(headers or {})
        self._position = 0

    @property
    def headers(self) -> Mapping[str, str]:
        return self._headers

    def get_header(self, name: str) -> Optional[str]:
        return _lookup_header(self._headers, name)

    def peek(self, size: int) -> bytes:
        """Return up to ``size`` bytes from the current position without consuming them."""

        return self._payload[self._position : self._position + max(size, 0)]

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            chunk = self._payload[self._position :]
        else:
            chunk = self._payload[self._position : self._position + size]
        self._position += len(chunk)
        return chunk

    def __repr__(self) -> str:
        return f"BytesResource(bytes={len(self._payload)}, headers={sorted(self._headers)})"


class CompositeResource:
    """Resource combining HTTP headers from one record and payload from another.

    Used when a revisit record supplies the response headers while the body is
    stored with an earlier capture. The composite holds plain references and
    does not close or otherwise manage either wrapped resource.
    """

    def __init__(self, headers_resource: Resource, payload_resource: Resource) -> None:
        self.headers_resource = headers_resource
        self.payload_resource = payload_resource

    @property
    def headers(self) -> Mapping[str, str]:
        return self.headers_resource.headers

    def get_header(self, name: str) -> Optional[str]:
        return self.headers_resource.get_header(name)

    def peek(self, size: int) -> bytes:
        return self.payload_resource.peek(size)

    def read(self, size: int = -1) -> bytes:
        return self.payload_resource.read(size)

    def __repr__(self) -> str:
        return f"CompositeResource(headers={self.headers_resource!r}, payload={self.payload_resource!r})"


__all__ = ("Resource", "BytesResource", "CompositeResource")
