"""
Header-sniffing content detection.

Implements the signature table of the WHATWG MIME Sniffing standard
(https://mimesniff.spec.whatwg.org/) over at most the first 512 bytes of a
file. Detection always yields a usable type: when nothing matches the
result is application/octet-stream.
"""
import struct
from dataclasses import dataclass
from typing import Optional

from .. import config

# Bytes the standard treats as leading whitespace
WHITESPACE = b"\t\n\x0c\r "

# Control bytes that mark content as binary for the plain-text rule
BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


@dataclass(frozen=True)
class ExactSig:
    sig: bytes
    ctype: str

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        return self.ctype if data.startswith(self.sig) else None


@dataclass(frozen=True)
class MaskedSig:
    mask: bytes
    pat: bytes
    ctype: str
    skip_ws: bool = False

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_ws:
            data = data[first_non_ws:]
        if len(self.pat) != len(self.mask) or len(data) < len(self.pat):
            return None
        for i, (m, p) in enumerate(zip(self.mask, self.pat)):
            if data[i] & m != p:
                return None
        return self.ctype


@dataclass(frozen=True)
class HtmlSig:
    """Case-insensitive tag match followed by a tag-terminating byte."""
    tag: bytes

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        for i, b in enumerate(self.tag):
            db = data[i]
            if ord("A") <= b <= ord("Z"):
                db &= 0xDF
            if b != db:
                return None
        if data[len(self.tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"


class Mp4Sig:
    """ISO base media file with an 'mp4' brand in its ftyp box."""

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if len(data) < 12:
            return None
        box_size = struct.unpack(">I", data[:4])[0]
        if len(data) < box_size or box_size % 4 != 0:
            return None
        if data[4:8] != b"ftyp":
            return None
        for start in range(8, box_size, 4):
            if start == 12:
                continue  # minor version
            if data[start:start + 3] == b"mp4":
                return "video/mp4"
        return None


class TextSig:
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if any(b in BINARY_BYTES for b in data[first_non_ws:]):
            return None
        return "text/plain; charset=utf-8"


SIGNATURES = [
    HtmlSig(b"<!DOCTYPE HTML"),
    HtmlSig(b"<HTML"),
    HtmlSig(b"<HEAD"),
    HtmlSig(b"<SCRIPT"),
    HtmlSig(b"<IFRAME"),
    HtmlSig(b"<H1"),
    HtmlSig(b"<DIV"),
    HtmlSig(b"<FONT"),
    HtmlSig(b"<TABLE"),
    HtmlSig(b"<A"),
    HtmlSig(b"<STYLE"),
    HtmlSig(b"<TITLE"),
    HtmlSig(b"<B"),
    HtmlSig(b"<BODY"),
    HtmlSig(b"<BR"),
    HtmlSig(b"<P"),
    HtmlSig(b"<!--"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\xFF", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    ExactSig(b"%PDF-", "application/pdf"),
    ExactSig(b"%!PS-Adobe-", "application/postscript"),

    # Byte order marks
    MaskedSig(b"\xFF\xFF\x00\x00", b"\xFE\xFF\x00\x00", "text/plain; charset=utf-16be"),
    MaskedSig(b"\xFF\xFF\x00\x00", b"\xFF\xFE\x00\x00", "text/plain; charset=utf-16le"),
    MaskedSig(b"\xFF\xFF\xFF\x00", b"\xEF\xBB\xBF\x00", "text/plain; charset=utf-8"),

    # Images
    ExactSig(b"\x00\x00\x01\x00", "image/x-icon"),
    ExactSig(b"\x00\x00\x02\x00", "image/x-icon"),
    ExactSig(b"BM", "image/bmp"),
    ExactSig(b"GIF87a", "image/gif"),
    ExactSig(b"GIF89a", "image/gif"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF\xFF\xFF",
              b"RIFF\x00\x00\x00\x00WEBPVP", "image/webp"),
    ExactSig(b"\x89PNG\x0D\x0A\x1A\x0A", "image/png"),
    ExactSig(b"\xFF\xD8\xFF", "image/jpeg"),

    # Audio and video
    MaskedSig(b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
              b"FORM\x00\x00\x00\x00AIFF", "audio/aiff"),
    MaskedSig(b"\xFF\xFF\xFF", b"ID3", "audio/mpeg"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\xFF", b"OggS\x00", "application/ogg"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\xFF\xFF\xFF\xFF", b"MThd\x00\x00\x00\x06", "audio/midi"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
              b"RIFF\x00\x00\x00\x00AVI ", "video/avi"),
    MaskedSig(b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF",
              b"RIFF\x00\x00\x00\x00WAVE", "audio/wave"),
    Mp4Sig(),
    ExactSig(b"\x1A\x45\xDF\xA3", "video/webm"),

    # Fonts
    MaskedSig(b"\x00" * 34 + b"\xFF\xFF", b"\x00" * 34 + b"LP", "application/vnd.ms-fontobject"),
    ExactSig(b"\x00\x01\x00\x00", "font/ttf"),
    ExactSig(b"OTTO", "font/otf"),
    ExactSig(b"ttcf", "font/collection"),
    ExactSig(b"wOFF", "font/woff"),
    ExactSig(b"wOF2", "font/woff2"),

    # Archives
    ExactSig(b"\x1F\x8B\x08", "application/x-gzip"),
    ExactSig(b"PK\x03\x04", "application/zip"),
    ExactSig(b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    ExactSig(b"Rar!\x1A\x07\x01\x00", "application/x-rar-compressed"),
    ExactSig(b"\x00\x61\x73\x6D", "application/wasm"),

    TextSig(),
]


def detect_content_type(data: bytes) -> str:
    """
    Returns the sniffed content type (with charset parameter where the rules
    define one) for a byte prefix. Only the first SNIFF_LEN bytes count.
    """
    data = data[:config.SNIFF_LEN]
    if not data:
        return config.SNIFF_FALLBACK_TYPE

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in WHITESPACE:
        first_non_ws += 1

    for sig in SIGNATURES:
        ctype = sig.match(data, first_non_ws)
        if ctype:
            return ctype
    return config.SNIFF_FALLBACK_TYPE
