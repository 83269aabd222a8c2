"""Closest-capture selection.

The dispatcher delegates the choice of capture to a
:class:`ClosestResultSelector`. Selectors return the capture that exactly
satisfies the request, or raise
:class:`~WaybackReplay.Dispatch.errors.AlternateCaptureError` with the best
substitute when no exact match exists.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Protocol, Sequence, runtime_checkable

from .core import CaptureResult, ReplayRequest
from .errors import AlternateCaptureError, NotInArchiveError
from .registry import ComponentRegistry, parse_bool, register_component

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class ClosestResultSelector(Protocol):
    """Chooses the capture that satisfies a request."""

    def get_closest(
        self, request: ReplayRequest, captures: Sequence[CaptureResult]
    ) -> CaptureResult: ...


def _is_success(capture: CaptureResult) -> bool:
    return capture.http_code is None or 200 <= capture.http_code < 300


@register_component("default-closest", kind="closest")
class DefaultClosestSelector:
    """Pick the capture nearest in time to the requested timestamp.

    Captures whose URL matches the request are preferred over other URL
    variants, and successful (2xx) captures over the rest when
    ``prefer_2xx`` is set. Distance ties go to the earlier capture.

    Raises ``AlternateCaptureError`` when the chosen capture's URL differs from
    the requested URL, or its timestamp differs from the requested one (unless
    the request asks for an exact timestamp).
    """

    def __init__(self, prefer_2xx: bool = True, match_url_key: bool = True) -> None:
        self.prefer_2xx = prefer_2xx
        self.match_url_key = match_url_key

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "DefaultClosestSelector":
        config = registry.config
        defaults = config.closest if config is not None else None
        return cls(
            prefer_2xx=parse_bool(
                properties.get("prefer_2xx"), defaults.prefer_2xx if defaults else True
            ),
            match_url_key=parse_bool(
                properties.get("match_url_key"), defaults.match_url_key if defaults else True
            ),
        )

    def _candidates(
        self, request: ReplayRequest, captures: Sequence[CaptureResult]
    ) -> List[CaptureResult]:
        pool = list(captures)
        if self.match_url_key:
            matching = [
                c for c in pool if request.request_url in (c.original_url, c.url_key)
            ]
            if matching:
                pool = matching
        if self.prefer_2xx:
            successful = [c for c in pool if _is_success(c)]
            if successful:
                pool = successful
        return pool

    def get_closest(
        self, request: ReplayRequest, captures: Sequence[CaptureResult]
    ) -> CaptureResult:
        if not captures:
            raise NotInArchiveError(
                f"No captures available for {request.request_url}", url=request.request_url
            )

        target = request.replay_datetime
        pool = self._candidates(request, captures)
        closest = min(
            pool,
            key=lambda c: (
                abs((c.capture_datetime - target).total_seconds()),
                c.capture_timestamp,
            ),
        )
        LOGGER.debug(
            f"Closest capture for {request.request_url}@{request.replay_timestamp}: "
            f"{closest.capture_timestamp} ({len(pool)}/{len(captures)} candidates)"
        )

        if closest.original_url != request.request_url:
            raise AlternateCaptureError(
                closest, message=f"Closest capture is of URL variant {closest.original_url}"
            )
        if not request.exact_timestamp and closest.capture_timestamp != request.replay_timestamp:
            raise AlternateCaptureError(
                closest,
                message=(
                    f"Requested {request.replay_timestamp}, closest capture is "
                    f"{closest.capture_timestamp}"
                ),
            )
        return closest


__all__ = ("ClosestResultSelector", "DefaultClosestSelector")
