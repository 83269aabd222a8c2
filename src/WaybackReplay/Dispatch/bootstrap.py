"""Assemble a dispatcher from :class:`DispatchConfig`.

``config.components`` is a flat property mapping laid over
:data:`DEFAULT_COMPONENTS`; the ``dispatcher`` namespace is resolved through a
:class:`~WaybackReplay.Dispatch.registry.ComponentRegistry`.

Example YAML::

    components:
      dispatcher.sniffers: sniffer.signature,sniffer.charset
      dispatcher.selectors: selector.html,selector.fallback
      selector.html.classname: mime-type
      selector.html.mime_contains: text/html
      selector.html.renderer: renderer.html
      ...
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Tuple

from . import closest, selectors, sniffers  # noqa: F401  (component registration)
from .config.models import DispatchConfig
from .dispatcher import SelectorReplayDispatcher
from .errors import ConfigurationError
from .registry import ComponentRegistry

LOGGER = logging.getLogger(__name__)

DISPATCHER_NAMESPACE = "dispatcher"

DEFAULT_COMPONENTS: Dict[str, str] = {
    "dispatcher.classname": "selector-dispatcher",
    "dispatcher.sniffers": "sniffer.signature,sniffer.charset",
    "dispatcher.selectors": "",
    "dispatcher.closest": "closest",
    "sniffer.signature.classname": "signature",
    "sniffer.charset.classname": "html-charset",
    "closest.classname": "default-closest",
}


def component_properties(
    config: DispatchConfig, overrides: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Merge default, configured and override component properties (later wins)."""

    merged = dict(DEFAULT_COMPONENTS)
    merged.update(config.components)
    if overrides:
        merged.update({str(k): str(v) for k, v in overrides.items()})
    return merged


def build_registry(
    config: Optional[DispatchConfig] = None, overrides: Optional[Mapping[str, str]] = None
) -> ComponentRegistry:
    config = config or DispatchConfig()
    return ComponentRegistry(component_properties(config, overrides), config=config)


def build_dispatcher(
    config: Optional[DispatchConfig] = None,
    overrides: Optional[Mapping[str, str]] = None,
    *,
    namespace: str = DISPATCHER_NAMESPACE,
) -> Tuple[SelectorReplayDispatcher, ComponentRegistry]:
    """Build the dispatcher and the registry holding its components.

    Raises:
        ConfigurationError: If any referenced component is missing or fails to
            construct, or the namespace does not produce a dispatcher.
    """

    registry = build_registry(config, overrides)
    dispatcher = registry.get_instance(namespace)
    if not isinstance(dispatcher, SelectorReplayDispatcher):
        raise ConfigurationError(
            f"Component {namespace!r} is {type(dispatcher).__name__}, not a dispatcher",
            key=f"{namespace}.classname",
        )
    LOGGER.info(
        f"Dispatcher ready: {len(dispatcher.selectors)} selectors, "
        f"{len(dispatcher.sniffers)} sniffers"
    )
    return dispatcher, registry


__all__ = ("DEFAULT_COMPONENTS", "build_dispatcher", "build_registry", "component_properties")
