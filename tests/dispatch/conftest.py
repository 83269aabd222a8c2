"""Shared fakes and fixtures for replay dispatch tests."""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import pytest

from WaybackReplay.Dispatch.core import CaptureResult, ReplayRequest
from WaybackReplay.Dispatch.errors import AlternateCaptureError
from WaybackReplay.Dispatch.registry import unregister_component
from WaybackReplay.Dispatch.resources import BytesResource


class RecordingSniffer:
    """Sniffer returning a fixed guess and recording the resources it saw."""

    def __init__(self, result: Optional[str]) -> None:
        self.result = result
        self.calls: List[Any] = []

    def sniff(self, resource: Any) -> Optional[str]:
        self.calls.append(resource)
        return self.result


class FixedSelector:
    """Selector with a fixed answer that records its arguments."""

    def __init__(self, accept: bool, renderer: Any) -> None:
        self.accept = accept
        self.renderer = renderer
        self.calls: List[Tuple[Any, ...]] = []

    def can_handle(self, request, capture, header_resource, payload_resource) -> bool:
        self.calls.append((request, capture, header_resource, payload_resource))
        return self.accept


class StubClosestSelector:
    """Closest selector returning ``capture`` or raising an alternate for it."""

    def __init__(
        self,
        capture: CaptureResult,
        *,
        alternate: bool = False,
        headers: Sequence[Tuple[str, str]] = (),
    ) -> None:
        self.capture = capture
        self.alternate = alternate
        self.headers = tuple(headers)
        self.calls: List[Tuple[ReplayRequest, Sequence[CaptureResult]]] = []

    def get_closest(self, request, captures) -> CaptureResult:
        self.calls.append((request, captures))
        if self.alternate:
            raise AlternateCaptureError(self.capture, self.headers)
        return self.capture


@pytest.fixture
def recording_sniffer() -> Callable[[Optional[str]], RecordingSniffer]:
    return RecordingSniffer


@pytest.fixture
def fixed_selector() -> Callable[..., FixedSelector]:
    return FixedSelector


@pytest.fixture
def stub_closest() -> Callable[..., StubClosestSelector]:
    return StubClosestSelector


@pytest.fixture
def make_request() -> Callable[..., ReplayRequest]:
    def _make(
        url: str = "http://example.com/",
        timestamp: str = "20050101000000",
        **kwargs: Any,
    ) -> ReplayRequest:
        return ReplayRequest(request_url=url, replay_timestamp=timestamp, **kwargs)

    return _make


@pytest.fixture
def make_capture() -> Callable[..., CaptureResult]:
    def _make(
        timestamp: str = "20050101000000",
        mime_type: Optional[str] = "text/html",
        url: str = "http://example.com/",
        **kwargs: Any,
    ) -> CaptureResult:
        return CaptureResult(
            original_url=url, capture_timestamp=timestamp, mime_type=mime_type, **kwargs
        )

    return _make


@pytest.fixture
def html_resource() -> BytesResource:
    return BytesResource(
        b"<!DOCTYPE html><html><head><meta charset='utf-8'></head><body>hi</body></html>",
        {"Content-Type": "text/html"},
    )


@pytest.fixture
def temporary_components() -> Iterator[List[str]]:
    """Collect component names registered by a test and unregister them afterwards."""

    names: List[str] = []
    yield names
    for name in names:
        unregister_component(name)
