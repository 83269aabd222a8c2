"""Built-in payload sniffers."""

from __future__ import annotations

import pytest

from WaybackReplay.Dispatch.resources import BytesResource
from WaybackReplay.Dispatch.sniffers import CharsetSniffer, MimeTypeSniffer, SignatureSniffer


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (b"%PDF-1.4\n%\xe2\xe3", "application/pdf"),
        (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
        (b"GIF89a\x01\x00", "image/gif"),
        (b"\xff\xd8\xff\xe0JFIF", "image/jpeg"),
        (b"PK\x03\x04rest", "application/zip"),
        (b"CWS\x0a", "application/x-shockwave-flash"),
        (b"  \n<!DOCTYPE HTML PUBLIC>", "text/html"),
        (b"\xef\xbb\xbf<html lang='en'>", "text/html"),
        (b"<?xml version='1.0'?><rss>", "text/xml"),
        (b"<rss version='2.0'>", "application/rss+xml"),
        (b"<svg xmlns='http://www.w3.org/2000/svg'>", "image/svg+xml"),
        (b"\r\n\r\ngarbage %PDF-1.3", "application/pdf"),
    ],
)
def test_signature_sniffer(payload, expected):
    assert SignatureSniffer().sniff(BytesResource(payload)) == expected


@pytest.mark.parametrize("payload", [b"", b"plain words", b"{\"json\": true}"])
def test_signature_sniffer_declines(payload):
    assert SignatureSniffer().sniff(BytesResource(payload)) is None


def test_signature_sniffer_only_reads_peek_window():
    payload = b" " * 100 + b"<html>"

    assert SignatureSniffer(peek_bytes=50).sniff(BytesResource(payload)) is None
    assert SignatureSniffer(peek_bytes=200).sniff(BytesResource(payload)) == "text/html"


def test_extra_signatures_take_priority():
    sniffer = SignatureSniffer(extra_signatures=[(b"%PDF-1.4 custom", "application/x-custom")])

    assert sniffer.sniff(BytesResource(b"%PDF-1.4 custom")) == "application/x-custom"


def test_invalid_peek_bytes():
    with pytest.raises(ValueError):
        SignatureSniffer(peek_bytes=0)
    with pytest.raises(ValueError):
        CharsetSniffer(peek_bytes=-1)


class TestCharsetSniffer:
    def test_meta_charset(self):
        resource = BytesResource(b'<html><head><meta charset="Shift_JIS"></head>')

        assert CharsetSniffer().sniff(resource) == "text/html; charset=shift_jis"

    def test_http_equiv_meta(self):
        resource = BytesResource(
            b'<html><meta http-equiv="Content-Type" content="text/html; charset=windows-1252">'
        )

        assert CharsetSniffer().sniff(resource) == "text/html; charset=windows-1252"

    def test_bom_wins_over_meta(self):
        resource = BytesResource(b"\xef\xbb\xbf<html><meta charset='latin-1'>")

        assert CharsetSniffer().sniff(resource) == "text/html; charset=utf-8"

    def test_header_charset_fallback(self):
        resource = BytesResource(b"<html><body>", {"content-type": "text/html; charset=KOI8-R"})

        assert CharsetSniffer().sniff(resource) == "text/html; charset=koi8-r"

    def test_declines_without_charset(self):
        assert CharsetSniffer().sniff(BytesResource(b"<html><body>")) is None

    def test_declines_non_html(self):
        resource = BytesResource(b"%PDF-1.4", {"Content-Type": "text/html; charset=utf-8"})

        assert CharsetSniffer().sniff(resource) is None


def test_sniffers_satisfy_protocol():
    assert isinstance(SignatureSniffer(), MimeTypeSniffer)
    assert isinstance(CharsetSniffer(), MimeTypeSniffer)
