"""Media-type sniffers that inspect archived payload bytes.

Sniffers run when the recorded media type of a capture is missing or belongs
to a family that is frequently mislabelled (HTML). Each sniffer returns a
best-guess media type or ``None`` to decline.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .registry import ComponentRegistry, register_component
from .resources import Resource


DEFAULT_PEEK_BYTES = 2048

_UTF8_BOM = b"\xef\xbb\xbf"

# (prefix, media type); checked against the payload with leading whitespace kept.
_BINARY_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"%PDF", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"%!PS", "application/postscript"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b", "application/gzip"),
    (b"FWS", "application/x-shockwave-flash"),
    (b"CWS", "application/x-shockwave-flash"),
    (b"ID3", "audio/mpeg"),
    (b"OggS", "application/ogg"),
)

# Lowercased markup prefixes; checked after stripping whitespace and BOM.
_MARKUP_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"<!doctype html", "text/html"),
    (b"<html", "text/html"),
    (b"<head", "text/html"),
    (b"<body", "text/html"),
    (b"<rss", "application/rss+xml"),
    (b"<feed", "application/atom+xml"),
    (b"<svg", "image/svg+xml"),
    (b"<?xml", "text/xml"),
)

_META_CHARSET_RE = re.compile(
    rb"""<meta[^>]+charset\s*=\s*["']?\s*([A-Za-z0-9_.:-]+)""", re.IGNORECASE
)
_HTML_MARKERS = tuple(marker for marker, mime in _MARKUP_SIGNATURES if mime == "text/html")
_HEADER_CHARSET_RE = re.compile(r"""charset\s*=\s*["']?([A-Za-z0-9_.:-]+)""", re.IGNORECASE)


@runtime_checkable
class MimeTypeSniffer(Protocol):
    """Detector producing a media type guess for a resource, or ``None``."""

    def sniff(self, resource: Resource) -> Optional[str]: ...


def _strip_leading(head: bytes) -> bytes:
    if head.startswith(_UTF8_BOM):
        head = head[len(_UTF8_BOM) :]
    return head.lstrip()


def _peek_bytes(properties: Mapping[str, str], registry: ComponentRegistry) -> int:
    value = properties.get("peek_bytes")
    if value:
        return int(value)
    config = registry.config
    if config is not None:
        return int(config.sniffing.peek_bytes)
    return DEFAULT_PEEK_BYTES


@register_component("signature", kind="sniffer")
class SignatureSniffer:
    """Detect common formats from leading magic bytes."""

    def __init__(
        self,
        peek_bytes: int = DEFAULT_PEEK_BYTES,
        extra_signatures: Sequence[Tuple[bytes, str]] = (),
    ) -> None:
        if peek_bytes <= 0:
            raise ValueError("peek_bytes must be > 0")
        self.peek_bytes = peek_bytes
        self.extra_signatures = tuple(extra_signatures)

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "SignatureSniffer":
        return cls(peek_bytes=_peek_bytes(properties, registry))

    def sniff(self, resource: Resource) -> Optional[str]:
        head = resource.peek(self.peek_bytes)
        if not head:
            return None

        for prefix, mime_type in (*self.extra_signatures, *_BINARY_SIGNATURES):
            if head.startswith(prefix):
                return mime_type

        prefix = _strip_leading(head)[:64].lower()
        for marker, mime_type in _MARKUP_SIGNATURES:
            if prefix.startswith(marker):
                return mime_type

        # Some archived PDFs carry junk before the header.
        if head.find(b"%PDF-") != -1:
            return "application/pdf"
        return None


@register_component("html-charset", kind="sniffer")
class CharsetSniffer:
    """Attach a charset to HTML payloads.

    Declines unless the payload looks like HTML. The charset comes from a byte
    order mark, then a ``<meta charset>`` declaration, then the recorded
    ``Content-Type`` header.
    """

    def __init__(self, peek_bytes: int = DEFAULT_PEEK_BYTES) -> None:
        if peek_bytes <= 0:
            raise ValueError("peek_bytes must be > 0")
        self.peek_bytes = peek_bytes

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "CharsetSniffer":
        return cls(peek_bytes=_peek_bytes(properties, registry))

    def _charset(self, head: bytes, resource: Resource) -> Optional[str]:
        if head.startswith(_UTF8_BOM):
            return "utf-8"
        if head.startswith(b"\xff\xfe") or head.startswith(b"\xfe\xff"):
            return "utf-16"
        match = _META_CHARSET_RE.search(head)
        if match:
            return match.group(1).decode("ascii", "ignore")
        header = resource.get_header("Content-Type") or ""
        header_match = _HEADER_CHARSET_RE.search(header)
        if header_match:
            return header_match.group(1)
        return None

    def sniff(self, resource: Resource) -> Optional[str]:
        head = resource.peek(self.peek_bytes)
        if not head:
            return None
        prefix = _strip_leading(head)[:64].lower()
        if not any(prefix.startswith(marker) for marker in _HTML_MARKERS):
            return None
        charset = self._charset(head, resource)
        if not charset:
            return None
        return f"text/html; charset={charset.lower()}"


__all__ = ("CharsetSniffer", "MimeTypeSniffer", "SignatureSniffer")
