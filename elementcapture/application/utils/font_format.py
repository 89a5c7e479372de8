from __future__ import annotations

from urllib.parse import urlparse

# Lower rank is preferred: the layout engine only accepts uncompressed outline fonts.
FORMAT_RANK = {
    "truetype": 0,
    "opentype": 0,
    "woff": 1,
    "woff2": 2,
}
UNKNOWN_FORMAT_RANK = 3

_EXTENSION_FORMATS = {
    ".ttf": "truetype",
    ".otf": "opentype",
    ".ttc": "truetype",
    ".woff": "woff",
    ".woff2": "woff2",
}

_MIME_FORMATS = {
    "font/ttf": "truetype",
    "font/otf": "opentype",
    "font/sfnt": "truetype",
    "application/x-font-ttf": "truetype",
    "application/x-font-opentype": "opentype",
    "font/woff": "woff",
    "application/font-woff": "woff",
    "font/woff2": "woff2",
}

_SIGNATURES = (
    (b"wOFF", "woff"),
    (b"wOF2", "woff2"),
    (b"OTTO", "opentype"),
    (b"\x00\x01\x00\x00", "truetype"),
    (b"true", "truetype"),
    (b"ttcf", "collection"),
)

COMPRESSED_FORMATS = frozenset({"woff", "woff2"})


def guess_font_format(url: str, hint: str | None = None) -> str | None:
    if hint:
        fmt = hint.strip().strip("\"'").lower()
        if fmt.endswith("-variations"):
            fmt = fmt[: -len("-variations")]
        return fmt
    if url.startswith("data:"):
        mime = url[5:].split(";", 1)[0].split(",", 1)[0].lower()
        return _MIME_FORMATS.get(mime)
    path = urlparse(url).path.lower()
    for ext in sorted(_EXTENSION_FORMATS, key=len, reverse=True):
        if path.endswith(ext):
            return _EXTENSION_FORMATS[ext]
    return None


def format_rank(url: str, hint: str | None = None) -> int:
    fmt = guess_font_format(url, hint)
    return FORMAT_RANK.get(fmt or "", UNKNOWN_FORMAT_RANK)


def rank_font_sources(sources: list[tuple[str, str | None]]) -> list[str]:
    """Order (url, format-hint) pairs by format preference; stable, de-duplicated."""
    ranked = sorted(enumerate(sources), key=lambda item: (format_rank(item[1][0], item[1][1]), item[0]))
    urls: list[str] = []
    for _, (url, _hint) in ranked:
        if url and url not in urls:
            urls.append(url)
    return urls


def sniff_font_format(data: bytes | None) -> str | None:
    if not data or len(data) < 4:
        return None
    head = bytes(data[:4])
    for signature, fmt in _SIGNATURES:
        if head == signature:
            return fmt
    return None


def is_renderer_compatible(data: bytes | None) -> bool:
    """WOFF/WOFF2 buffers are rejected whatever their URL claimed."""
    if not data:
        return False
    return sniff_font_format(data) not in COMPRESSED_FORMATS
