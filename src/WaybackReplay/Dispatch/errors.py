# === NAVMAP v1 ===
# {
#   "module": "WaybackReplay.Dispatch.errors",
#   "purpose": "Error taxonomy and logging helpers for replay dispatch.",
#   "sections": [
#     {
#       "id": "replaydispatcherror",
#       "name": "ReplayDispatchError",
#       "anchor": "class-replaydispatcherror",
#       "kind": "class"
#     },
#     {
#       "id": "configurationerror",
#       "name": "ConfigurationError",
#       "anchor": "class-configurationerror",
#       "kind": "class"
#     },
#     {
#       "id": "notinarchiveerror",
#       "name": "NotInArchiveError",
#       "anchor": "class-notinarchiveerror",
#       "kind": "class"
#     },
#     {
#       "id": "alternatecaptureerror",
#       "name": "AlternateCaptureError",
#       "anchor": "class-alternatecaptureerror",
#       "kind": "class"
#     },
#     {
#       "id": "log-dispatch-failure",
#       "name": "log_dispatch_failure",
#       "anchor": "function-log-dispatch-failure",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Error taxonomy and logging helpers for replay dispatch.

Responsibilities
----------------
- :class:`ConfigurationError` signals a deployment defect: a missing or
  unusable component in the flat component configuration. It is fatal to the
  resolution path that needed the component and is never retried.
- :class:`AlternateCaptureError` is not a fault. Closest-capture selectors
  raise it to say "no exact match, here is the best substitute" together with
  the response headers to offer. The dispatcher converts it into an
  :class:`~WaybackReplay.Dispatch.outcomes.Alternate` result.
- :class:`NotInArchiveError` reports an empty candidate set.
- :func:`log_dispatch_failure` emits the structured fields dashboards expect.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .core import CaptureResult, ReplayRequest

__all__ = (
    "ReplayDispatchError",
    "ConfigurationError",
    "NotInArchiveError",
    "AlternateCaptureError",
    "log_dispatch_failure",
)

LOGGER = logging.getLogger(__name__)

Header = Tuple[str, str]


class ReplayDispatchError(Exception):
    """Base class for dispatch-layer errors."""


class ConfigurationError(ReplayDispatchError):
    """Raised when a configured component cannot be resolved or constructed."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class NotInArchiveError(ReplayDispatchError):
    """Raised when no capture is available for the requested URL."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class AlternateCaptureError(ReplayDispatchError):
    """Signal that a better (non-exact) capture should be offered instead.

    Args:
        capture: Suggested substitute capture.
        headers: Initial ``(name, value)`` header pairs to attach.
        message: Optional human-readable message.
    """

    def __init__(
        self,
        capture: "CaptureResult",
        headers: Optional[Sequence[Header]] = None,
        message: Optional[str] = None,
    ) -> None:
        self.capture = capture
        self.headers: List[Header] = list(headers or [])
        super().__init__(
            message or f"Alternate capture available: {capture.capture_timestamp}"
        )

    def add_header(self, name: str, value: str) -> None:
        """Append a response header to offer alongside the alternate."""

        self.headers.append((name, value))


def log_dispatch_failure(
    logger: logging.Logger,
    error: BaseException,
    *,
    request: Optional["ReplayRequest"] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """Log a dispatch failure with structured context."""

    extra_fields: dict[str, Any] = {
        "error_type": type(error).__name__,
        "url": getattr(request, "request_url", None),
        "timestamp": getattr(request, "replay_timestamp", None),
    }
    if isinstance(error, ConfigurationError) and error.key:
        extra_fields["config_key"] = error.key
    if metadata:
        extra_fields["metadata"] = metadata

    logger.warning("Replay dispatch failed: %s", error, extra={"extra_fields": extra_fields})
