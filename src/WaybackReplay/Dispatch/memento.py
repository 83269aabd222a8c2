# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.memento",
#   "purpose": "Memento (RFC 7089) header values for time negotiation.",
#   "sections": [
#     {
#       "id": "http-date",
#       "name": "http_date",
#       "anchor": "function-http-date",
#       "kind": "function"
#     },
#     {
#       "id": "make-original-link",
#       "name": "make_original_link",
#       "anchor": "function-make-original-link",
#       "kind": "function"
#     },
#     {
#       "id": "make-timemap-link",
#       "name": "make_timemap_link",
#       "anchor": "function-make-timemap-link",
#       "kind": "function"
#     },
#     {
#       "id": "generate-memento-links",
#       "name": "generate_memento_links",
#       "anchor": "function-generate-memento-links",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Memento (RFC 7089) header values for time negotiation.

Only header *values* are produced here; writing them onto a response is the
replay layer's job. Link values follow the link-format used by Wayback
TimeGates::

    <http://example.com/>; rel="original",
    <http://archive/web/timemap/link/http://example.com/>; rel="timemap"; type="application/link-format",
    <http://archive/web/20040101000000/http://example.com/>; rel="first memento"; datetime="Thu, 01 Jan 2004 00:00:00 GMT",
    ...
"""

from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .config.models import MementoPolicy
from .core import CaptureResult, ReplayRequest

VARY = "Vary"
LINK = "Link"
MEMENTO_DATETIME = "Memento-Datetime"
NEGOTIATE_DATETIME = "accept-datetime"

REL_ORIGINAL = "original"
REL_TIMEMAP = "timemap"
REL_MEMENTO = "memento"
LINK_FORMAT = "application/link-format"

_POSITIONAL = ("first", "last", "prev", "next")


def http_date(value: datetime) -> str:
    """Format an aware datetime as an RFC 7231 HTTP-date."""

    return format_datetime(value, usegmt=True)


def replay_url(capture: CaptureResult, policy: MementoPolicy) -> str:
    return f"{policy.replay_prefix}{capture.capture_timestamp}/{capture.original_url}"


def make_original_link(url: str) -> str:
    """``Link`` value pointing at the live (original) resource."""

    return f'<{url}>; rel="{REL_ORIGINAL}"'


def make_timemap_link(url: str, policy: MementoPolicy) -> Optional[str]:
    if not policy.timemap_prefix:
        return None
    return f'<{policy.timemap_prefix}{url}>; rel="{REL_TIMEMAP}"; type="{LINK_FORMAT}"'


def make_memento_link(capture: CaptureResult, rel: str, policy: MementoPolicy) -> str:
    return (
        f'<{replay_url(capture, policy)}>; rel="{rel}"; '
        f'datetime="{http_date(capture.capture_datetime)}"'
    )


def _relations(
    ordered: Sequence[CaptureResult], closest: CaptureResult, link_all: bool = False
) -> List[Tuple[CaptureResult, str]]:
    """Pair captures with their combined relation types, in time order.

    Every emitted entry is a memento; positional types (first, last, prev,
    next) are prepended, e.g. ``"first prev memento"``.
    """

    if not ordered:
        return [(closest, REL_MEMENTO)]

    try:
        position: Optional[int] = list(ordered).index(closest)
    except ValueError:
        position = None

    marks: Dict[int, Set[str]] = {}

    def _mark(index: int, token: Optional[str] = None) -> None:
        bucket = marks.setdefault(index, set())
        if token:
            bucket.add(token)

    _mark(0, "first")
    _mark(len(ordered) - 1, "last")
    if link_all:
        for index in range(len(ordered)):
            _mark(index)

    if position is None:
        # Suggested capture is not in the candidate set; neighbours are
        # derived from its timestamp.
        stamp = closest.capture_timestamp
        earlier = [i for i, c in enumerate(ordered) if c.capture_timestamp < stamp]
        later = [i for i, c in enumerate(ordered) if c.capture_timestamp > stamp]
        if earlier:
            _mark(earlier[-1], "prev")
        if later:
            _mark(later[0], "next")
    else:
        _mark(position)
        if position > 0:
            _mark(position - 1, "prev")
        if position + 1 < len(ordered):
            _mark(position + 1, "next")

    pairs = [
        (ordered[index], " ".join([*(t for t in _POSITIONAL if t in tokens), REL_MEMENTO]))
        for index, tokens in sorted(marks.items())
    ]
    if position is None:
        pairs.append((closest, REL_MEMENTO))
        pairs.sort(key=lambda pair: pair[0].capture_timestamp)
    return pairs


def generate_memento_links(
    captures: Sequence[CaptureResult],
    request: ReplayRequest,
    closest: CaptureResult,
    policy: MementoPolicy,
    *,
    include_original: bool = True,
    include_timemap: bool = True,
) -> str:
    """Build the TimeGate ``Link`` value describing the whole capture set.

    Args:
        captures: Candidate captures (any order); not modified.
        request: Request whose URL is the original resource.
        closest: Capture the TimeGate negotiates toward.
        policy: Replay and timemap URL prefixes.
        include_original: Emit the ``rel="original"`` entry.
        include_timemap: Emit the ``rel="timemap"`` entry when a prefix is set.

    Returns:
        Comma separated link-format value.
    """

    ordered = tuple(sorted(captures, key=lambda c: c.capture_timestamp))

    links: List[str] = []
    if include_original:
        links.append(make_original_link(request.request_url))
    if include_timemap:
        timemap = make_timemap_link(request.request_url, policy)
        if timemap:
            links.append(timemap)
    for capture, rel in _relations(ordered, closest, policy.link_all_captures):
        links.append(make_memento_link(capture, rel, policy))
    return ", ".join(links)


__all__ = (
    "LINK",
    "MEMENTO_DATETIME",
    "NEGOTIATE_DATETIME",
    "VARY",
    "generate_memento_links",
    "http_date",
    "make_memento_link",
    "make_original_link",
    "make_timemap_link",
    "replay_url",
)
