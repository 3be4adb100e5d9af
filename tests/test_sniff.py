import pytest
from tree_indexer.metadata.sniff import detect_content_type

@pytest.mark.parametrize("data,expected", [
    (b"", "application/octet-stream"),
    (b"  \n\t<HTML><body>", "text/html; charset=utf-8"),
    (b"<!doctype html>\n<html>", "text/html; charset=utf-8"),
    (b"<p>para</p>", "text/html; charset=utf-8"),
    (b"<?xml version='1.0'?><a/>", "text/xml; charset=utf-8"),
    (b"%PDF-1.4\n", "application/pdf"),
    (b"%!PS-Adobe-3.0", "application/postscript"),
    (b"\xFE\xFF\x00h\x00i", "text/plain; charset=utf-16be"),
    (b"\xFF\xFEh\x00i\x00", "text/plain; charset=utf-16le"),
    (b"\xEF\xBB\xBFhello", "text/plain; charset=utf-8"),
    (b"GIF89a\x01\x00", "image/gif"),
    (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
    (b"\xFF\xD8\xFF\xE0\x00\x10JFIF", "image/jpeg"),
    (b"BM\x00\x00", "image/bmp"),
    (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
    (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
    (b"ID3\x03\x00", "audio/mpeg"),
    (b"OggS\x00\x02", "application/ogg"),
    (b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom", "video/mp4"),
    (b"\x1A\x45\xDF\xA3\x9f", "video/webm"),
    (b"wOF2\x00\x01", "font/woff2"),
    (b"\x1F\x8B\x08\x00", "application/x-gzip"),
    (b"PK\x03\x04\x14\x00", "application/zip"),
    (b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    (b"\x00asm\x01\x00\x00\x00", "application/wasm"),
    (b"just some words\nand lines\n", "text/plain; charset=utf-8"),
    (b"\x00\x01\x02\x03\x04", "application/octet-stream"),
])
def test_detect_content_type(data, expected):
    assert detect_content_type(data) == expected

def test_html_tag_needs_terminator():
    # '<a' must be followed by space or '>' to count as HTML
    assert detect_content_type(b"<abc>") == "text/plain; charset=utf-8"

def test_only_first_512_bytes_considered():
    # Binary byte beyond the sniff window does not spoil the text verdict
    data = b"a" * 512 + b"\x00"
    assert detect_content_type(data) == "text/plain; charset=utf-8"

def test_never_fails_on_arbitrary_bytes():
    for i in range(256):
        assert detect_content_type(bytes([i]) * 3)
