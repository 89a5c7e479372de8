from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Sequence, TypeVar

from elementcapture.application.exceptions import ResourceFetchError
from elementcapture.application.ports.font_loader import FontLoaderPort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.utils.css_text import (
    extract_font_faces,
    extract_imports,
    parse_font_style,
    parse_font_weight,
    split_font_families,
)
from elementcapture.domain.entities.dom import DomNode
from elementcapture.domain.entities.font import FontDescriptor, FontFaceRecord, FontSource
from elementcapture.domain.entities.page import FontFace, PageSnapshot

SYSTEM_FONT_FAMILIES = frozenset(
    {
        "serif",
        "sans-serif",
        "monospace",
        "cursive",
        "fantasy",
        "math",
        "emoji",
        "fangsong",
        "system-ui",
        "ui-serif",
        "ui-sans-serif",
        "ui-monospace",
        "ui-rounded",
        "-apple-system",
        "blinkmacsystemfont",
        "segoe ui",
        "segoe ui emoji",
        "segoe ui symbol",
        "apple color emoji",
        "noto color emoji",
        "helvetica",
        "helvetica neue",
        "arial",
        "times",
        "times new roman",
        "courier",
        "courier new",
        "inherit",
        "initial",
        "unset",
    }
)


@dataclass(frozen=True)
class FontDiscovery:
    fonts: list[FontDescriptor]
    system_fonts: list[FontDescriptor]


def is_system_family(family: str) -> bool:
    return family.strip().lower() in SYSTEM_FONT_FAMILIES


def discover_fonts(root: DomNode) -> FontDiscovery:
    """Collect the (family, style, weight) triples used in the subtree, in document order."""
    fonts: list[FontDescriptor] = []
    system_fonts: list[FontDescriptor] = []
    seen: set[tuple[str, str, int]] = set()

    for element in root.iter_elements():
        style = parse_font_style(element.style("font-style"))
        weight = parse_font_weight(element.style("font-weight"))
        for family in split_font_families(element.style("font-family")):
            descriptor = FontDescriptor(family=family, style=style, weight=weight)
            if descriptor.key in seen:
                continue
            seen.add(descriptor.key)
            if is_system_family(family):
                system_fonts.append(descriptor)
            else:
                fonts.append(descriptor)

    return FontDiscovery(fonts=fonts, system_fonts=system_fonts)


_Face = TypeVar("_Face", FontFace, FontFaceRecord)


def match_font_face(descriptor: FontDescriptor, candidates: Sequence[_Face]) -> _Face | None:
    """
    Pick the candidate of the same family closest to the descriptor.

    Style is compared before weight: an italic request takes an italic face
    of any weight over an upright face of the exact weight. Ties keep
    document order.
    """
    family = descriptor.family.lower()
    best: _Face | None = None
    best_score: tuple[int, int] | None = None
    for candidate in candidates:
        if candidate.family.lower() != family:
            continue
        score = (int(candidate.style != descriptor.style), abs(candidate.weight - descriptor.weight))
        if best_score is None or score < best_score:
            best, best_score = candidate, score
    return best


class StylesheetFontFaceCollector:
    """
    Harvest `@font-face` rules from the document's stylesheets.

    Readable sheets are scanned in place; cross-origin sheets and `@import`
    targets are fetched. Traversal is a breadth-first work-list with a
    visited set keyed by absolute URL, so import cycles terminate. Fetched
    stylesheet text (or the fact that the fetch failed) is kept for the
    lifetime of the collector.
    """

    def __init__(self, fetcher: ResourceFetcherPort) -> None:
        self._fetcher = fetcher
        self._texts: dict[str, str | None] = {}
        self._inflight: dict[str, asyncio.Task[str | None]] = {}
        self._logger = logging.getLogger(__name__)

    async def collect(self, page: PageSnapshot) -> list[FontFaceRecord]:
        records: list[FontFaceRecord] = []
        seen: set[tuple[str, str, int, tuple[str, ...]]] = set()
        visited: set[str] = set()
        pending_texts: deque[tuple[str, str | None]] = deque()
        pending_urls: deque[str] = deque()

        for sheet in page.stylesheets:
            if sheet.accessible:
                if sheet.href:
                    visited.add(sheet.href)
                pending_texts.append((sheet.css_text or "", sheet.href or page.base_url))
            elif sheet.href:
                pending_urls.append(sheet.href)

        while pending_texts or pending_urls:
            if pending_texts:
                css, base_url = pending_texts.popleft()
                for record in extract_font_faces(css, base_url):
                    key = (record.family.lower(), record.style, record.weight, record.urls)
                    if key not in seen:
                        seen.add(key)
                        records.append(record)
                pending_urls.extend(u for u in extract_imports(css, base_url) if u not in visited)
                continue

            url = pending_urls.popleft()
            if url in visited:
                continue
            visited.add(url)
            text = await self._stylesheet_text(url)
            if text is not None:
                pending_texts.append((text, url))

        return records

    async def _stylesheet_text(self, url: str) -> str | None:
        if url in self._texts:
            return self._texts[url]
        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._fetch(url))
            self._inflight[url] = task
            task.add_done_callback(lambda done: self._forget(url, done))
        return await asyncio.shield(task)

    def _forget(self, url: str, task: asyncio.Task[str | None]) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]

    async def _fetch(self, url: str) -> str | None:
        try:
            text = await self._fetcher.fetch_text(url)
        except ResourceFetchError as e:
            self._logger.warning("Stylesheet fetch failed", extra={"url": url, "error": str(e)})
            text = None
        self._texts[url] = text
        return text


class FontDescriptorEngine:
    """Discovery and best-effort resolution of the fonts a capture needs."""

    def __init__(
        self,
        collector: StylesheetFontFaceCollector,
        loader: FontLoaderPort | None = None,
    ) -> None:
        self._collector = collector
        self._loader = loader
        self._logger = logging.getLogger(__name__)

    def discover(self, root: DomNode) -> FontDiscovery:
        return discover_fonts(root)

    async def resolve(self, descriptors: list[FontDescriptor], page: PageSnapshot) -> list[FontSource]:
        """
        Attach byte sources to each collectable descriptor.

        Descriptors with neither inline bytes nor a candidate URL are dropped.
        The returned list keeps discovery order.
        """
        if not descriptors:
            return []
        try:
            records = await self._collector.collect(page)
        except Exception as e:
            self._logger.warning("Font-face discovery failed", extra={"error": str(e)})
            records = []

        resolved = await asyncio.gather(*(self._resolve_one(d, page, records) for d in descriptors))
        return [source for source in resolved if source is not None]

    async def _resolve_one(
        self,
        descriptor: FontDescriptor,
        page: PageSnapshot,
        records: list[FontFaceRecord],
    ) -> FontSource | None:
        data: bytes | None = None
        face = match_font_face(descriptor, page.font_faces)
        if face is not None:
            face = await self._ensure_loaded(face)
            data = face.data

        record = match_font_face(descriptor, records)
        urls = record.urls if record is not None else ()

        if data is None and not urls:
            self._logger.info("Font dropped: no source", extra={"family": descriptor.family})
            return None
        return FontSource(descriptor=descriptor, urls=urls, data=data)

    async def _ensure_loaded(self, face: FontFace) -> FontFace:
        if face.loaded or self._loader is None:
            return face
        try:
            return await self._loader.load(face)
        except Exception as e:
            self._logger.warning("Font face load failed", extra={"family": face.family, "error": str(e)})
            return face
