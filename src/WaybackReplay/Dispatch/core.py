# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.core",
#   "purpose": "Replay request and capture data model shared by the dispatch layer.",
#   "sections": [
#     {
#       "id": "normalize-timestamp",
#       "name": "normalize_timestamp",
#       "anchor": "function-normalize-timestamp",
#       "kind": "function"
#     },
#     {
#       "id": "timestamp-to-datetime",
#       "name": "timestamp_to_datetime",
#       "anchor": "function-timestamp-to-datetime",
#       "kind": "function"
#     },
#     {
#       "id": "replayrequest",
#       "name": "ReplayRequest",
#       "anchor": "class-replayrequest",
#       "kind": "class"
#     },
#     {
#       "id": "captureresult",
#       "name": "CaptureResult",
#       "anchor": "class-captureresult",
#       "kind": "class"
#     },
#     {
#       "id": "captureresults",
#       "name": "CaptureResults",
#       "anchor": "class-captureresults",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Replay request and capture data model.

Responsibilities
----------------
- :class:`ReplayRequest` is the per-call context owned by the request handling
  layer. The dispatch layer reads it and writes only
  :attr:`ReplayRequest.forced_content_type`.
- :class:`CaptureResult` describes one archived snapshot as reported by the
  capture index, including revisit records that point at the capture whose
  payload they duplicate.
- :class:`CaptureResults` is the read-only, ordered capture set consumed by
  closest-capture selection and Memento link generation.

Timestamps use the 14-digit ``YYYYMMDDhhmmss`` form found in CDX indexes.
Partial timestamps (``"2004"``, ``"200403"``) are padded to the earliest
instant they denote.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional, Sequence, Tuple

#: Capture index marker for a record whose payload duplicates an earlier capture.
REVISIT_MIME = "warc/revisit"

#: Placeholder written by old ARC indexers when no media type was recorded.
UNKNOWN_MIME = "unk"

_TIMESTAMP_RE = re.compile(r"^\d{4,14}$")
_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# (start, end, earliest value) of each field after the year.
_TIMESTAMP_FIELDS: Tuple[Tuple[int, int, str], ...] = (
    (4, 6, "01"),
    (6, 8, "01"),
    (8, 10, "00"),
    (10, 12, "00"),
    (12, 14, "00"),
)


def normalize_timestamp(value: str) -> str:
    """Return ``value`` padded to a full 14-digit timestamp.

    Each missing or truncated field is padded to the earliest instant it can
    denote: ``"2004021"`` is 10 February 2004, ``"20040"`` is January.

    Raises:
        ValueError: If ``value`` is not a 4 to 14 digit string or does not
            denote a real date and time.
    """

    text = (value or "").strip()
    if not _TIMESTAMP_RE.match(text):
        raise ValueError(f"Invalid capture timestamp: {value!r}")

    padded = text[:4]
    for start, end, earliest in _TIMESTAMP_FIELDS:
        digits = text[start:end]
        if len(digits) == 1:
            digits = max(digits + "0", earliest)
        elif not digits:
            digits = earliest
        padded += digits

    try:
        datetime.strptime(padded, _TIMESTAMP_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid capture timestamp: {value!r} ({e})") from e
    return padded


def timestamp_to_datetime(value: str) -> datetime:
    """Parse a (possibly partial) 14-digit timestamp into an aware UTC datetime."""

    return datetime.strptime(normalize_timestamp(value), _TIMESTAMP_FORMAT).replace(
        tzinfo=timezone.utc
    )


@dataclass
class ReplayRequest:
    """Mutable per-request replay context."""

    request_url: str
    replay_timestamp: str
    forced_content_type: Optional[str] = None
    memento_enabled: bool = False
    memento_timegate: bool = False
    exact_timestamp: bool = False

    def __post_init__(self) -> None:
        if not self.request_url or not self.request_url.strip():
            raise ValueError("ReplayRequest.request_url cannot be empty")
        self.replay_timestamp = normalize_timestamp(self.replay_timestamp)

    @property
    def replay_datetime(self) -> datetime:
        return timestamp_to_datetime(self.replay_timestamp)


@dataclass(frozen=True)
class CaptureResult:
    """One archived snapshot of a URL.

    Attributes:
        original_url: URL as it was crawled.
        capture_timestamp: 14-digit capture time.
        mime_type: Media type recorded at capture time. May be ``None``, ``""``,
            :data:`UNKNOWN_MIME`, or :data:`REVISIT_MIME`.
        url_key: Canonical (SURT) key from the index; defaults to ``original_url``.
        http_code: Recorded HTTP status, if any.
        digest: Payload digest from the index.
        duplicate_payload: For revisit records, the capture holding the payload.
    """

    original_url: str
    capture_timestamp: str
    mime_type: Optional[str] = None
    url_key: Optional[str] = None
    http_code: Optional[int] = None
    digest: Optional[str] = None
    duplicate_payload: Optional["CaptureResult"] = None

    def __post_init__(self) -> None:
        if not self.original_url or not self.original_url.strip():
            raise ValueError("CaptureResult.original_url cannot be empty")
        object.__setattr__(self, "capture_timestamp", normalize_timestamp(self.capture_timestamp))
        if self.url_key is None:
            object.__setattr__(self, "url_key", self.original_url)

    @property
    def capture_datetime(self) -> datetime:
        return timestamp_to_datetime(self.capture_timestamp)

    @property
    def is_revisit(self) -> bool:
        return self.mime_type == REVISIT_MIME


@dataclass(frozen=True)
class CaptureResults(Sequence[CaptureResult]):
    """Read-only ordered set of candidate captures for one request."""

    captures: Tuple[CaptureResult, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "captures", tuple(self.captures))

    def __getitem__(self, index):  # type: ignore[override]
        return self.captures[index]

    def __len__(self) -> int:
        return len(self.captures)

    def __iter__(self) -> Iterator[CaptureResult]:
        return iter(self.captures)

    def sorted_by_time(self) -> Tuple[CaptureResult, ...]:
        """Captures in ascending capture time; ties keep index order."""

        return tuple(sorted(self.captures, key=lambda c: c.capture_timestamp))

    @property
    def first(self) -> Optional[CaptureResult]:
        ordered = self.sorted_by_time()
        return ordered[0] if ordered else None

    @property
    def last(self) -> Optional[CaptureResult]:
        ordered = self.sorted_by_time()
        return ordered[-1] if ordered else None

    def neighbours(
        self, capture: CaptureResult
    ) -> Tuple[Optional[CaptureResult], Optional[CaptureResult]]:
        """Return the captures immediately before and after ``capture`` in time.

        Raises:
            ValueError: If ``capture`` is not part of this set.
        """

        ordered = self.sorted_by_time()
        for position, candidate in enumerate(ordered):
            if candidate is capture or candidate == capture:
                prev_capture = ordered[position - 1] if position > 0 else None
                next_capture = ordered[position + 1] if position + 1 < len(ordered) else None
                return prev_capture, next_capture
        raise ValueError(f"Capture {capture.capture_timestamp} is not part of this result set")


__all__ = (
    "REVISIT_MIME",
    "UNKNOWN_MIME",
    "CaptureResult",
    "CaptureResults",
    "ReplayRequest",
    "normalize_timestamp",
    "timestamp_to_datetime",
)
