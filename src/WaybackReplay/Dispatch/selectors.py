# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.selectors",
#   "purpose": "Renderer selectors deciding which renderer replays a capture.",
#   "sections": [
#     {
#       "id": "rendererselector",
#       "name": "RendererSelector",
#       "anchor": "class-rendererselector",
#       "kind": "class"
#     },
#     {
#       "id": "baserendererselector",
#       "name": "BaseRendererSelector",
#       "anchor": "class-baserendererselector",
#       "kind": "class"
#     },
#     {
#       "id": "alwaysselector",
#       "name": "AlwaysSelector",
#       "anchor": "class-alwaysselector",
#       "kind": "class"
#     },
#     {
#       "id": "mimetypeselector",
#       "name": "MimeTypeSelector",
#       "anchor": "class-mimetypeselector",
#       "kind": "class"
#     },
#     {
#       "id": "redirectselector",
#       "name": "RedirectSelector",
#       "anchor": "class-redirectselector",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Renderer selectors.

A dispatcher holds an ordered tuple of selectors and returns the renderer of
the first one whose :meth:`can_handle` accepts the
``(request, capture, header_resource, payload_resource)`` combination.
Renderers themselves are opaque handles supplied by the replay layer.

Selectors built from the component registry name their renderer through the
``renderer`` property, which is itself a component namespace:

    selector.html.classname = mime-type
    selector.html.mime_contains = text/html,application/xhtml
    selector.html.renderer = renderer.archival_html
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .core import CaptureResult, ReplayRequest
from .errors import ConfigurationError
from .registry import ComponentRegistry, register_component, split_list
from .resources import Resource


@runtime_checkable
class RendererSelector(Protocol):
    """Capability check paired with the renderer it selects."""

    @property
    def renderer(self) -> Any: ...

    def can_handle(
        self,
        request: ReplayRequest,
        capture: CaptureResult,
        header_resource: Resource,
        payload_resource: Resource,
    ) -> bool: ...


def _renderer_from_properties(properties: Mapping[str, str], registry: ComponentRegistry) -> Any:
    namespace = properties.get("renderer")
    if not namespace:
        raise ConfigurationError("Selector requires a 'renderer' namespace", key="renderer")
    return registry.get_instance(namespace)


class BaseRendererSelector:
    """Shared plumbing for selectors: holds the renderer handle."""

    def __init__(self, renderer: Any) -> None:
        if renderer is None:
            raise ValueError("renderer must not be None")
        self._renderer = renderer

    @property
    def renderer(self) -> Any:
        return self._renderer

    def can_handle(
        self,
        request: ReplayRequest,
        capture: CaptureResult,
        header_resource: Resource,
        payload_resource: Resource,
    ) -> bool:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(renderer={self._renderer!r})"


@register_component("always", kind="selector")
class AlwaysSelector(BaseRendererSelector):
    """Accepts every capture; typically last in the chain."""

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "AlwaysSelector":
        return cls(_renderer_from_properties(properties, registry))

    def can_handle(self, request, capture, header_resource, payload_resource) -> bool:
        return True


@register_component("mime-type", kind="selector")
class MimeTypeSelector(BaseRendererSelector):
    """Accepts captures whose effective media type contains one of ``mime_contains``.

    The effective media type is the request's forced content type when set
    (media-type resolution writes it before selectors run), otherwise the
    recorded capture media type.
    """

    def __init__(self, renderer: Any, mime_contains: Sequence[str]) -> None:
        super().__init__(renderer)
        self.mime_contains = tuple(item.lower() for item in mime_contains if item)
        if not self.mime_contains:
            raise ValueError("mime_contains must name at least one media type fragment")

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "MimeTypeSelector":
        return cls(
            _renderer_from_properties(properties, registry),
            split_list(properties.get("mime_contains")),
        )

    def can_handle(self, request, capture, header_resource, payload_resource) -> bool:
        mime_type: Optional[str] = request.forced_content_type or capture.mime_type
        if not mime_type:
            return False
        lowered = mime_type.lower()
        return any(fragment in lowered for fragment in self.mime_contains)


@register_component("redirect", kind="selector")
class RedirectSelector(BaseRendererSelector):
    """Accepts captures of 3xx responses that recorded a ``Location`` header."""

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str], registry: ComponentRegistry
    ) -> "RedirectSelector":
        return cls(_renderer_from_properties(properties, registry))

    def can_handle(self, request, capture, header_resource, payload_resource) -> bool:
        if capture.http_code is None or not 300 <= capture.http_code < 400:
            return False
        return bool(header_resource.get_header("Location"))


__all__ = (
    "AlwaysSelector",
    "BaseRendererSelector",
    "MimeTypeSelector",
    "RedirectSelector",
    "RendererSelector",
)
