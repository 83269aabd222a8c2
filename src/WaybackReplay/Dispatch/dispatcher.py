# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.dispatcher",
#   "purpose": "Closest-capture resolution and renderer dispatch for archived captures.",
#   "sections": [
#     {
#       "id": "selectorreplaydispatcher",
#       "name": "SelectorReplayDispatcher",
#       "anchor": "class-selectorreplaydispatcher",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Closest-capture resolution and renderer dispatch.

:class:`SelectorReplayDispatcher` is the go-between for the replay layer:

1. :meth:`~SelectorReplayDispatcher.resolve_closest` picks the capture to show
   through the configured closest-capture selector and, when only an
   alternate is available, attaches Memento negotiation headers.
2. :meth:`~SelectorReplayDispatcher.get_renderer` resolves the effective media
   type of the chosen capture (recorded type, header fallback, sniffing) and
   returns the renderer of the first selector that can handle it.

The dispatcher keeps its selector and sniffer chains as tuples and holds no
per-request state, so a single instance is shared by concurrent requests.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .closest import ClosestResultSelector
from .config.models import MementoPolicy, SniffingPolicy
from .core import UNKNOWN_MIME, CaptureResult, ReplayRequest
from .errors import AlternateCaptureError, ConfigurationError
from .memento import LINK, NEGOTIATE_DATETIME, VARY, generate_memento_links, make_original_link
from .outcomes import Alternate, ClosestOutcome, Resolved
from .registry import ComponentRegistry, register_component, split_list
from .resources import CompositeResource, Resource
from .selectors import RendererSelector
from .sniffers import MimeTypeSniffer

LOGGER = logging.getLogger(__name__)


@register_component("selector-dispatcher", kind="dispatcher")
class SelectorReplayDispatcher:
    """Dispatcher driven by ordered renderer selectors and media-type sniffers.

    Args:
        selectors: Renderer selectors, consulted in order; first match wins.
        sniffers: Media-type sniffers run when the recorded type is missing or
            in the always re-checked family.
        closest_selector: Closest-capture collaborator.
        sniffing: Sniffing policy; defaults re-check ``text/html``.
        memento: Memento link policy.
    """

    def __init__(
        self,
        selectors: Iterable[RendererSelector] = (),
        sniffers: Iterable[MimeTypeSniffer] = (),
        closest_selector: Optional[ClosestResultSelector] = None,
        *,
        sniffing: Optional[SniffingPolicy] = None,
        memento: Optional[MementoPolicy] = None,
    ) -> None:
        self._selectors: Tuple[RendererSelector, ...] = tuple(selectors)
        self._sniffers: Tuple[MimeTypeSniffer, ...] = tuple(sniffers)
        self._closest_selector = closest_selector
        self.sniffing = sniffing or SniffingPolicy()
        self.memento = memento or MementoPolicy()

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "SelectorReplayDispatcher":
        """Build from ``selectors``/``sniffers`` (namespace lists) and ``closest``."""

        config = registry.config
        closest_namespace = properties.get("closest")
        return cls(
            selectors=registry.get_instances(split_list(properties.get("selectors"))),
            sniffers=registry.get_instances(split_list(properties.get("sniffers"))),
            closest_selector=(
                registry.get_instance(closest_namespace) if closest_namespace else None
            ),
            sniffing=config.sniffing if config is not None else None,
            memento=config.memento if config is not None else None,
        )

    @property
    def selectors(self) -> Tuple[RendererSelector, ...]:
        return self._selectors

    @property
    def sniffers(self) -> Tuple[MimeTypeSniffer, ...]:
        return self._sniffers

    @property
    def closest_selector(self) -> Optional[ClosestResultSelector]:
        return self._closest_selector

    # ------------------------------------------------------------------
    # Media-type resolution
    # ------------------------------------------------------------------

    def should_detect_mime_type(self, mime_type: str) -> bool:
        """Return ``True`` when ``mime_type`` must be re-checked by sniffing."""

        lowered = mime_type.strip().lower()
        return any(lowered.startswith(prefix) for prefix in self.sniffing.always_sniff_prefixes)

    def _sniff(self, resource: Resource) -> Optional[str]:
        detected: Optional[str] = None
        for sniffer in self._sniffers:
            guess = sniffer.sniff(resource)
            if not guess:
                continue
            if detected is not None:
                LOGGER.debug(
                    f"{type(sniffer).__name__} supersedes earlier guess {detected!r} with {guess!r}"
                )
            detected = guess
            if self.sniffing.stop_on_first_match:
                break
        return detected

    def resolve_mime_type(
        self, request: ReplayRequest, capture: CaptureResult, resource: Resource
    ) -> Optional[str]:
        """Write the effective media type into ``request.forced_content_type``.

        A content type already forced by the caller is left untouched. The
        forced content type is written at most once per call.

        Returns:
            The request's forced content type after resolution (may be ``None``
            when nothing is recorded and no sniffer recognises the payload).
        """

        if request.forced_content_type is not None:
            return request.forced_content_type

        mime_type = capture.mime_type
        if capture.is_revisit:
            if capture.duplicate_payload is not None:
                mime_type = capture.duplicate_payload.mime_type
            else:
                mime_type = None

        # Old ARC indexes record "unk" even when the HTTP response carried a
        # usable Content-Type.
        if not mime_type or mime_type == UNKNOWN_MIME:
            mime_type = resource.get_header("Content-Type")

        if not mime_type or self.should_detect_mime_type(mime_type):
            detected = self._sniff(resource)
            LOGGER.debug(
                f"Sniffed {capture.original_url}@{capture.capture_timestamp}: "
                f"recorded={mime_type!r} detected={detected!r}"
            )
            if detected is not None:
                request.forced_content_type = detected
        else:
            request.forced_content_type = mime_type

        return request.forced_content_type

    # ------------------------------------------------------------------
    # Renderer dispatch
    # ------------------------------------------------------------------

    def get_renderer(
        self,
        request: ReplayRequest,
        capture: CaptureResult,
        header_resource: Resource,
        payload_resource: Optional[Resource] = None,
    ) -> Optional[Any]:
        """Return the renderer for ``capture``, or ``None`` when no selector accepts it.

        When ``payload_resource`` is a different object than
        ``header_resource`` (revisit records), media-type resolution runs on a
        :class:`CompositeResource` taking headers from the former and bytes
        from the latter.
        """

        if payload_resource is None:
            payload_resource = header_resource

        if payload_resource is header_resource:
            resource: Resource = header_resource
        else:
            resource = CompositeResource(header_resource, payload_resource)

        self.resolve_mime_type(request, capture, resource)

        for selector in self._selectors:
            if selector.can_handle(request, capture, header_resource, payload_resource):
                LOGGER.debug(
                    f"{type(selector).__name__} selected for "
                    f"{capture.original_url}@{capture.capture_timestamp} "
                    f"({request.forced_content_type!r})"
                )
                return selector.renderer

        LOGGER.debug(
            f"No renderer for {capture.original_url}@{capture.capture_timestamp} "
            f"({request.forced_content_type!r})"
        )
        return None

    # ------------------------------------------------------------------
    # Closest-capture resolution
    # ------------------------------------------------------------------

    def _negotiation_headers(
        self,
        request: ReplayRequest,
        captures: Sequence[CaptureResult],
        alternate: CaptureResult,
    ) -> List[Tuple[str, str]]:
        if not request.memento_enabled:
            return []
        if request.memento_timegate:
            return [
                (VARY, NEGOTIATE_DATETIME),
                (LINK, generate_memento_links(captures, request, alternate, self.memento)),
            ]
        return [(LINK, make_original_link(request.request_url))]

    def resolve_closest(
        self, request: ReplayRequest, captures: Sequence[CaptureResult]
    ) -> ClosestOutcome:
        """Resolve the capture to replay.

        Returns:
            :class:`Resolved` for an exact match, otherwise :class:`Alternate`
            carrying the suggested capture and the headers to offer with it.

        Raises:
            ConfigurationError: If no closest-capture selector is configured.
            NotInArchiveError: Propagated from the selector for empty sets.
        """

        if self._closest_selector is None:
            raise ConfigurationError("No closest-capture selector configured", key="closest")

        try:
            capture = self._closest_selector.get_closest(request, captures)
        except AlternateCaptureError as e:
            headers = [*e.headers, *self._negotiation_headers(request, captures, e.capture)]
            LOGGER.debug(
                f"Alternate capture {e.capture.capture_timestamp} for "
                f"{request.request_url}@{request.replay_timestamp} "
                f"(memento={request.memento_enabled}, timegate={request.memento_timegate})"
            )
            return Alternate(e.capture, tuple(headers))
        return Resolved(capture)

    def get_closest(
        self, request: ReplayRequest, captures: Sequence[CaptureResult]
    ) -> CaptureResult:
        """Exception-flow variant of :meth:`resolve_closest`.

        Raises:
            AlternateCaptureError: With negotiation headers attached.
        """

        return self.resolve_closest(request, captures).unwrap()


__all__ = ("SelectorReplayDispatcher",)
