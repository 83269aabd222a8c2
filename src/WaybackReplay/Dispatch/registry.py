# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.registry",
#   "purpose": "Named component registry with construct-once instance caching.",
#   "sections": [
#     {
#       "id": "register-component",
#       "name": "register_component",
#       "anchor": "function-register-component",
#       "kind": "function"
#     },
#     {
#       "id": "get-registry",
#       "name": "get_registry",
#       "anchor": "function-get-registry",
#       "kind": "function"
#     },
#     {
#       "id": "componentregistry",
#       "name": "ComponentRegistry",
#       "anchor": "class-componentregistry",
#       "kind": "class"
#     },
#     {
#       "id": "split-list",
#       "name": "split_list",
#       "anchor": "function-split-list",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Component Registry for replay dispatch

Provides named construction of sniffers, renderer selectors, closest-capture
selectors and dispatchers from a flat key/value configuration:

- ``@register_component(name)`` records a factory under an explicit name
- ``<namespace>.classname`` selects the registered name for a namespace
- every other ``<namespace>.<key>`` entry (prefix stripped) is passed to the
  factory as its sub-configuration
- instances are cached per namespace and constructed at most once, even when
  several threads ask for the same namespace concurrently
- a component that depends on itself fails with ConfigurationError, also when
  the loop runs through constructions on different threads

Example:
    registry = ComponentRegistry({
        "sniffer.classname": "signature",
        "sniffer.peek_bytes": "4096",
    })
    sniffer = registry.get_instance("sniffer")
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

Factory = Callable[[Mapping[str, str], "ComponentRegistry"], Any]

# ============================================================================
# Registry
# ============================================================================

_REGISTRY: Dict[str, Tuple[str, Factory]] = {}


def _class_factory(cls: Type[Any]) -> Factory:
    """Return a factory for ``cls``: ``from_properties`` when defined, else ``cls()``."""

    from_properties = getattr(cls, "from_properties", None)
    if from_properties is not None:
        return from_properties

    def _build(properties: Mapping[str, str], registry: "ComponentRegistry") -> Any:
        return cls()

    return _build


def register_component(name: str, *, kind: str = "component"):
    """Decorator to register a component class under ``name``."""

    def deco(cls: Type[Any]) -> Type[Any]:
        if name in _REGISTRY:
            _LOGGER.warning(f"Overriding already-registered component: {name}")
        _REGISTRY[name] = (kind, _class_factory(cls))
        cls._registry_name = name  # type: ignore[attr-defined]
        _LOGGER.debug(f"Registered {kind}: {name} → {cls.__name__}")
        return cls

    return deco


def register_factory(name: str, factory: Factory, *, kind: str = "component") -> None:
    """Register a plain factory callable under ``name``."""

    if name in _REGISTRY:
        _LOGGER.warning(f"Overriding already-registered component: {name}")
    _REGISTRY[name] = (kind, factory)


def unregister_component(name: str) -> None:
    _REGISTRY.pop(name, None)


def get_registry() -> Dict[str, Tuple[str, Factory]]:
    """Get the component registry (copy)."""
    return dict(_REGISTRY)


def get_factory(name: str) -> Factory:
    """Lookup a component factory by registered name."""
    registry = get_registry()
    if name not in registry:
        available = sorted(registry.keys())
        raise ConfigurationError(f"Unknown component: {name!r}. Available: {available}")
    return registry[name][1]


def split_list(value: Optional[str]) -> List[str]:
    """Split a comma separated property value, dropping blanks."""

    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ============================================================================
# Instance cache
# ============================================================================

_MISSING = object()


class ComponentRegistry:
    """Construct-once cache of configured components keyed by namespace.

    Args:
        properties: Flat configuration mapping.
        config: Optional typed configuration made available to factories.
    """

    def __init__(self, properties: Mapping[str, str], config: Any = None) -> None:
        self.properties: Dict[str, str] = {str(k): str(v) for k, v in properties.items()}
        self.config = config
        self._instances: Dict[str, Any] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        # namespace -> thread constructing it, thread -> namespace it waits for
        self._owners: Dict[str, int] = {}
        self._waiting: Dict[int, str] = {}
        self._local = threading.local()

    def sub_properties(self, namespace: str) -> Tuple[Optional[str], Dict[str, str]]:
        """Return ``(classname, sub_configuration)`` for ``namespace``."""

        classname_key = f"{namespace}.classname"
        prefix = f"{namespace}."
        classname: Optional[str] = None
        sub: Dict[str, str] = {}
        for key, value in self.properties.items():
            if key == classname_key:
                classname = value.strip() or None
            elif key.startswith(prefix):
                sub[key[len(prefix) :]] = value
        return classname, sub

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.properties.get(key, default)

    def _construct(self, namespace: str) -> Any:
        _LOGGER.info(f"Constructing component {namespace}...")
        classname, sub = self.sub_properties(namespace)
        if classname is None:
            raise ConfigurationError(
                f"No configuration for ({namespace}.classname)", key=f"{namespace}.classname"
            )

        try:
            factory = get_factory(classname)
        except ConfigurationError as e:
            raise ConfigurationError(str(e), key=f"{namespace}.classname") from e

        try:
            instance = factory(sub, self)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to construct {namespace} ({classname}): {e}", key=namespace
            ) from e

        _LOGGER.info(f"Initialized {namespace} as {classname} ({type(instance).__name__})")
        return instance

    def _check_wait(self, namespace: str, stack: List[str]) -> None:
        # Follow owner -> awaited namespace -> owner across threads; reaching
        # the calling thread means the wait would never end. Caller holds _guard.
        me = threading.get_ident()
        chain = [*stack, namespace]
        current = namespace
        while True:
            owner = self._owners.get(current)
            if owner is None:
                return
            if owner == me:
                raise ConfigurationError(
                    f"Circular component reference: {' → '.join(chain)}", key=namespace
                )
            current = self._waiting.get(owner)
            if current is None:
                return
            chain.append(current)

    def get_instance(self, namespace: str) -> Any:
        """Return the cached component for ``namespace``, constructing it once.

        Raises:
            ConfigurationError: If the namespace is unconfigured, names an
                unknown component, its construction fails, or it depends on
                itself (directly, or through a construction running on
                another thread).
        """

        instance = self._instances.get(namespace, _MISSING)
        if instance is not _MISSING:
            return instance

        stack: List[str] = getattr(self._local, "stack", None) or []
        if namespace in stack:
            chain = " → ".join([*stack, namespace])
            raise ConfigurationError(f"Circular component reference: {chain}", key=namespace)

        me = threading.get_ident()
        with self._guard:
            lock = self._locks.setdefault(namespace, threading.Lock())
            self._check_wait(namespace, stack)
            self._waiting[me] = namespace

        try:
            lock.acquire()
        except BaseException:
            with self._guard:
                self._waiting.pop(me, None)
            raise
        try:
            with self._guard:
                self._waiting.pop(me, None)
                self._owners[namespace] = me
            instance = self._instances.get(namespace, _MISSING)
            if instance is _MISSING:
                self._local.stack = [*stack, namespace]
                try:
                    instance = self._construct(namespace)
                finally:
                    self._local.stack = stack
                self._instances[namespace] = instance
        finally:
            with self._guard:
                self._owners.pop(namespace, None)
            lock.release()
        return instance

    def get_instances(self, namespaces: List[str]) -> List[Any]:
        return [self.get_instance(namespace) for namespace in namespaces]

    def cached_namespaces(self) -> List[str]:
        return sorted(self._instances)


__all__ = [
    "ComponentRegistry",
    "get_factory",
    "get_registry",
    "parse_bool",
    "register_component",
    "register_factory",
    "split_list",
    "unregister_component",
]
