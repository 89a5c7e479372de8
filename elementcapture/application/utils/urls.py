from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

CSS_URL_RE = re.compile(r"url\(\s*(?:(['\"])(.*?)\1|([^)'\"]*?))\s*\)", re.IGNORECASE)

_PASSTHROUGH_PREFIXES = ("data:", "blob:", "about:", "javascript:", "#")


def resolve_url(reference: str, base_url: str | None) -> str:
    """Absolutize one reference; anything that cannot be resolved is returned unchanged."""
    ref = (reference or "").strip().strip("\"'").strip()
    if not ref or ref.lower().startswith(_PASSTHROUGH_PREFIXES):
        return ref
    try:
        if urlparse(ref).scheme or not base_url:
            return ref
        return urljoin(base_url, ref)
    except ValueError:
        return ref


def resolve_css_urls(value: str, base_url: str | None) -> str:
    """Rewrite the target of every url(...) in a CSS value to an absolute URL."""

    def _replace(match: re.Match[str]) -> str:
        ref = match.group(2) if match.group(2) is not None else match.group(3)
        resolved = resolve_url(ref or "", base_url)
        if not resolved:
            return match.group(0)
        return f'url("{resolved}")'

    return CSS_URL_RE.sub(_replace, value)


def resolve_srcset(srcset: str, base_url: str | None) -> str:
    return ", ".join(
        f"{resolve_url(url, base_url)} {descriptor}".strip()
        for url, descriptor in parse_srcset(srcset)
    )


def parse_srcset(srcset: str) -> list[tuple[str, str]]:
    """
    Split a srcset attribute into (url, descriptor) candidates.

    URLs never contain whitespace, so commas inside data: URLs are kept;
    a comma is only a separator after the URL token or its descriptor.
    """
    text = srcset or ""
    candidates: list[tuple[str, str]] = []
    pos = 0
    length = len(text)
    while pos < length:
        while pos < length and (text[pos].isspace() or text[pos] == ","):
            pos += 1
        if pos >= length:
            break
        start = pos
        while pos < length and not text[pos].isspace():
            pos += 1
        url = text[start:pos]
        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            start = pos
            while pos < length and text[pos] != ",":
                pos += 1
            descriptor = text[start:pos].strip()
        if url:
            candidates.append((url, descriptor))
    return candidates
