"""Replay dispatch public exports.

Closest-capture resolution with Memento negotiation and renderer dispatch with
media-type sniffing for archived captures.
"""

from __future__ import annotations

import importlib
import sys
from typing import Any

__all__ = [
    "Alternate",
    "AlternateCaptureError",
    "AlwaysSelector",
    "BytesResource",
    "CaptureResult",
    "CaptureResults",
    "CharsetSniffer",
    "ComponentRegistry",
    "CompositeResource",
    "ConfigurationError",
    "DefaultClosestSelector",
    "DispatchConfig",
    "MimeTypeSelector",
    "NotInArchiveError",
    "RedirectSelector",
    "ReplayRequest",
    "Resolved",
    "SelectorReplayDispatcher",
    "SignatureSniffer",
    "build_dispatcher",
    "load_config",
    "register_component",
]

_EXPORT_MAP: dict[str, tuple[str, str]] = {
    "Alternate": (".outcomes", "Alternate"),
    "AlternateCaptureError": (".errors", "AlternateCaptureError"),
    "AlwaysSelector": (".selectors", "AlwaysSelector"),
    "BytesResource": (".resources", "BytesResource"),
    "CaptureResult": (".core", "CaptureResult"),
    "CaptureResults": (".core", "CaptureResults"),
    "CharsetSniffer": (".sniffers", "CharsetSniffer"),
    "ComponentRegistry": (".registry", "ComponentRegistry"),
    "CompositeResource": (".resources", "CompositeResource"),
    "ConfigurationError": (".errors", "ConfigurationError"),
    "DefaultClosestSelector": (".closest", "DefaultClosestSelector"),
    "DispatchConfig": (".config", "DispatchConfig"),
    "MimeTypeSelector": (".selectors", "MimeTypeSelector"),
    "NotInArchiveError": (".errors", "NotInArchiveError"),
    "RedirectSelector": (".selectors", "RedirectSelector"),
    "ReplayRequest": (".core", "ReplayRequest"),
    "Resolved": (".outcomes", "Resolved"),
    "SelectorReplayDispatcher": (".dispatcher", "SelectorReplayDispatcher"),
    "SignatureSniffer": (".sniffers", "SignatureSniffer"),
    "build_dispatcher": (".bootstrap", "build_dispatcher"),
    "load_config": (".config", "load_config"),
    "register_component": (".registry", "register_component"),
}


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised in tests
    if name in _EXPORT_MAP:
        module_path, attr_name = _EXPORT_MAP[name]
        module = importlib.import_module(f"{__name__}{module_path}")
        value = getattr(module, attr_name)
        setattr(sys.modules[__name__], name, value)
        return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:  # pragma: no cover - tooling helper
    return sorted(set(globals()) | set(__all__))
