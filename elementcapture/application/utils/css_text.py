from __future__ import annotations

import re

from elementcapture.application.utils.css_values import split_top_level
from elementcapture.application.utils.font_format import rank_font_sources
from elementcapture.application.utils.urls import resolve_url
from elementcapture.domain.entities.font import FontFaceRecord

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_FONT_FACE_RE = re.compile(r"@font-face\s*\{([^{}]*)\}", re.IGNORECASE)
_IMPORT_RE = re.compile(
    r"@import\s+(?:url\(\s*(['\"]?)([^'\")]+)\1\s*\)|(['\"])([^'\"]+)\3)[^;]*;?",
    re.IGNORECASE,
)
_SRC_ENTRY_RE = re.compile(
    r"url\(\s*(['\"]?)(?P<url>[^'\")]+)\1\s*\)(?:\s*format\(\s*['\"]?(?P<format>[^'\")]+)['\"]?\s*\))?",
    re.IGNORECASE,
)

FONT_WEIGHT_KEYWORDS = {
    "normal": 400,
    "bold": 700,
    "bolder": 700,
    "lighter": 300,
}


def strip_comments(css: str) -> str:
    return _COMMENT_RE.sub("", css or "")


def normalize_family(name: str) -> str:
    return (name or "").strip().strip("\"'").strip()


def split_font_families(value: str) -> list[str]:
    """Parse a font-family list, keeping commas inside quoted names."""
    families: list[str] = []
    for token in split_top_level(value or "", separators=","):
        family = normalize_family(token)
        if family:
            families.append(family)
    return families


def parse_font_weight(value: str | None) -> int:
    text = (value or "").strip().lower()
    if text in FONT_WEIGHT_KEYWORDS:
        return FONT_WEIGHT_KEYWORDS[text]
    try:
        weight = int(round(float(text.split()[0])))
    except (ValueError, IndexError, OverflowError):
        return 400
    return max(100, min(900, weight))


def parse_font_style(value: str | None) -> str:
    text = (value or "").strip().lower()
    if text.startswith(("italic", "oblique")):
        return "italic"
    return "normal"


def parse_declaration_block(body: str) -> dict[str, str]:
    declarations: dict[str, str] = {}
    for chunk in split_top_level(body or "", separators=";"):
        if ":" not in chunk:
            continue
        name, value = chunk.split(":", 1)
        name = name.strip().lower()
        if name:
            declarations[name] = value.strip()
    return declarations


def extract_font_faces(css: str, base_url: str | None) -> list[FontFaceRecord]:
    """Harvest `@font-face` rules; src urls are absolutized against the sheet's own URL."""
    records: list[FontFaceRecord] = []
    for match in _FONT_FACE_RE.finditer(strip_comments(css)):
        block = parse_declaration_block(match.group(1))
        families = split_font_families(block.get("font-family", ""))
        if not families:
            continue
        sources = [
            (resolve_url(entry.group("url"), base_url), entry.group("format"))
            for entry in _SRC_ENTRY_RE.finditer(block.get("src", ""))
        ]
        records.append(
            FontFaceRecord(
                family=families[0],
                style=parse_font_style(block.get("font-style")),
                weight=parse_font_weight(block.get("font-weight")),
                urls=tuple(rank_font_sources(sources)),
            )
        )
    return records


def extract_imports(css: str, base_url: str | None) -> list[str]:
    urls: list[str] = []
    for match in _IMPORT_RE.finditer(strip_comments(css)):
        ref = match.group(2) or match.group(4) or ""
        resolved = resolve_url(ref, base_url)
        if resolved and resolved not in urls:
            urls.append(resolved)
    return urls
