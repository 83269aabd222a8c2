"""Closest-capture resolution outcomes.

``Resolved`` and ``Alternate`` are the two results of
:meth:`~WaybackReplay.Dispatch.dispatcher.SelectorReplayDispatcher.resolve_closest`.
An ``Alternate`` is not a resolution: the caller must redirect to, negotiate
toward, or explicitly choose to render the suggested capture.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, Union

from .core import CaptureResult
from .errors import AlternateCaptureError

Header = Tuple[str, str]


@dataclass(frozen=True)
class Resolved:
    """The capture exactly satisfies the request."""

    capture: CaptureResult
    kind: Literal["resolved"] = field(default="resolved", init=False)

    @property
    def headers(self) -> Tuple[Header, ...]:
        return ()

    def unwrap(self) -> CaptureResult:
        return self.capture


@dataclass(frozen=True)
class Alternate:
    """No exact match; ``capture`` is the suggested substitute.

    Attributes:
        capture: Capture to redirect or negotiate toward.
        headers: Ordered ``(name, value)`` response headers to offer with it.
    """

    capture: CaptureResult
    headers: Tuple[Header, ...] = ()
    kind: Literal["alternate"] = field(default="alternate", init=False)

    def header_values(self, name: str) -> Tuple[str, ...]:
        lowered = name.lower()
        return tuple(value for key, value in self.headers if key.lower() == lowered)

    def first_header(self, name: str) -> Optional[str]:
        values = self.header_values(name)
        return values[0] if values else None

    def to_error(self) -> AlternateCaptureError:
        return AlternateCaptureError(self.capture, self.headers)

    def unwrap(self) -> CaptureResult:
        """Raise the alternate as :class:`AlternateCaptureError`."""

        raise self.to_error()


ClosestOutcome = Union[Resolved, Alternate]

__all__ = ("Alternate", "ClosestOutcome", "Resolved")
