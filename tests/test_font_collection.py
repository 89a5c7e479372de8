"""
Tests for font discovery, @font-face harvesting and descriptor resolution.
"""

from __future__ import annotations

import asyncio

from elementcapture.application.exceptions import ResourceFetchError
from elementcapture.application.ports.font_loader import FontLoaderPort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.use_cases.font_collection import (
    FontDescriptorEngine,
    StylesheetFontFaceCollector,
    discover_fonts,
    match_font_face,
)
from elementcapture.application.utils.css_text import extract_font_faces
from elementcapture.application.utils.font_format import is_renderer_compatible, sniff_font_format
from elementcapture.domain.entities.dom import DomNode
from elementcapture.domain.entities.font import FontDescriptor, FontFaceRecord
from elementcapture.domain.entities.page import FontFace, PageSnapshot, StyleSheet

PAGE_URL = "https://example.com/index.html"


class FakeFetcher(ResourceFetcherPort):
    def __init__(self, texts: dict[str, str], delay: float = 0.0) -> None:
        self.texts = texts
        self.delay = delay
        self.calls: list[str] = []

    async def fetch_text(self, url: str) -> str:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        if url not in self.texts:
            raise ResourceFetchError(f"404 for {url}")
        return self.texts[url]

    async def fetch_bytes(self, url: str) -> bytes:
        raise ResourceFetchError("not used")


class FakeLoader(FontLoaderPort):
    def __init__(self) -> None:
        self.loaded: list[str] = []

    async def load(self, face: FontFace) -> FontFace:
        self.loaded.append(face.family)
        return FontFace(family=face.family, style=face.style, weight=face.weight, status="loaded", data=b"\x00\x01\x00\x00ttf")


def _page(sheets: list[StyleSheet], faces: list[FontFace] | None = None) -> PageSnapshot:
    return PageSnapshot(url=PAGE_URL, root=DomNode(tag="div"), stylesheets=sheets, font_faces=faces or [])


def test_discovery_routes_system_families():
    """Generic and platform families are reported separately and never collected."""
    root = DomNode(
        tag="div",
        computed_style={"font-family": '"Brand Sans", Arial, sans-serif', "font-weight": "700"},
        children=[
            DomNode(tag="em", computed_style={"font-family": "Brand Sans", "font-style": "italic", "font-weight": "700"}),
            DomNode(tag="b", computed_style={"font-family": "'Brand Sans', Arial", "font-weight": "bold"}),
        ],
    )
    discovery = discover_fonts(root)

    assert discovery.fonts == [
        FontDescriptor("Brand Sans", "normal", 700),
        FontDescriptor("Brand Sans", "italic", 700),
    ]
    assert [f.family for f in discovery.system_fonts] == ["Arial", "sans-serif"]


def test_match_prefers_style_over_weight():
    """italic 700 takes the italic 400 face over the upright 700 face."""
    faces = [
        FontFaceRecord("Brand", "normal", 700, ("a.ttf",)),
        FontFaceRecord("Brand", "italic", 400, ("b.ttf",)),
        FontFaceRecord("Other", "italic", 700, ("c.ttf",)),
    ]
    assert match_font_face(FontDescriptor("brand", "italic", 700), faces).urls == ("b.ttf",)
    assert match_font_face(FontDescriptor("Brand", "normal", 600), faces).urls == ("a.ttf",)
    assert match_font_face(FontDescriptor("Missing", "normal", 400), faces) is None


def test_match_ties_keep_first_candidate():
    faces = [
        FontFaceRecord("Brand", "normal", 300, ("light.ttf",)),
        FontFaceRecord("Brand", "normal", 500, ("medium.ttf",)),
    ]
    assert match_font_face(FontDescriptor("Brand", "normal", 400), faces).urls == ("light.ttf",)


def test_font_face_sources_are_ranked_and_absolute():
    css = """
    /* brand */
    @font-face {
      font-family: "Brand";
      font-weight: bold;
      src: url(fonts/brand.woff2) format("woff2"), url('fonts/brand.woff') format('woff'), url(fonts/brand.ttf);
    }
    """
    records = extract_font_faces(css, "https://cdn.example.com/css/site.css")
    assert records == [
        FontFaceRecord(
            family="Brand",
            style="normal",
            weight=700,
            urls=(
                "https://cdn.example.com/css/fonts/brand.ttf",
                "https://cdn.example.com/css/fonts/brand.woff",
                "https://cdn.example.com/css/fonts/brand.woff2",
            ),
        )
    ]


def test_cyclic_imports_terminate_without_duplicates():
    """a.css and b.css import each other; each is fetched once and each face reported once."""
    fetcher = FakeFetcher(
        {
            "https://example.com/a.css": '@import url("b.css"); @font-face { font-family: A; src: url(a.ttf); }',
            "https://example.com/b.css": '@import "a.css"; @font-face { font-family: B; src: url(b.ttf); }',
        }
    )
    collector = StylesheetFontFaceCollector(fetcher)
    page = _page([StyleSheet(href="https://example.com/a.css", css_text=None)])

    records = asyncio.run(collector.collect(page))

    assert [r.family for r in records] == ["A", "B"]
    assert sorted(fetcher.calls) == ["https://example.com/a.css", "https://example.com/b.css"]


def test_accessible_sheet_is_not_refetched_through_import():
    fetcher = FakeFetcher({"https://example.com/extra.css": "@import 'main.css';"})
    page = _page(
        [
            StyleSheet(
                href="https://example.com/main.css",
                css_text="@import 'extra.css'; @font-face { font-family: Main; src: url(main.ttf); }",
            )
        ]
    )
    records = asyncio.run(StylesheetFontFaceCollector(fetcher).collect(page))

    assert [r.family for r in records] == ["Main"]
    assert fetcher.calls == ["https://example.com/extra.css"]


def test_stylesheet_fetched_once_across_concurrent_collections():
    fetcher = FakeFetcher({"https://example.com/x.css": "@font-face { font-family: X; src: url(x.ttf); }"}, delay=0.01)
    collector = StylesheetFontFaceCollector(fetcher)
    page = _page([StyleSheet(href="https://example.com/x.css", css_text=None)])

    async def run():
        return await asyncio.gather(collector.collect(page), collector.collect(page), collector.collect(page))

    results = asyncio.run(run())

    assert fetcher.calls == ["https://example.com/x.css"]
    assert all([r.family for r in records] == ["X"] for records in results)


def test_failed_stylesheet_is_skipped():
    fetcher = FakeFetcher({})
    page = _page(
        [
            StyleSheet(href="https://example.com/gone.css", css_text=None),
            StyleSheet(href=None, css_text="@font-face { font-family: Inline; src: url(/f/inline.ttf); }"),
        ]
    )
    records = asyncio.run(StylesheetFontFaceCollector(fetcher).collect(page))

    assert records == [FontFaceRecord("Inline", "normal", 400, ("https://example.com/f/inline.ttf",))]


def test_resolve_uses_document_faces_and_drops_unresolvable():
    """Loaded document bytes win; descriptors without bytes or urls are dropped."""
    loader = FakeLoader()
    engine = FontDescriptorEngine(StylesheetFontFaceCollector(FakeFetcher({})), loader=loader)
    page = _page(
        [StyleSheet(href=None, css_text="@font-face { font-family: Web; src: url(web.ttf); }")],
        faces=[FontFace(family="Local", status="unloaded")],
    )
    descriptors = [
        FontDescriptor("Local"),
        FontDescriptor("Ghost"),
        FontDescriptor("Web", "italic", 700),
    ]

    sources = asyncio.run(engine.resolve(descriptors, page))

    assert [s.family for s in sources] == ["Local", "Web"]
    assert sources[0].data == b"\x00\x01\x00\x00ttf"
    assert sources[1].data is None
    assert sources[1].urls == ("https://example.com/web.ttf",)
    assert loader.loaded == ["Local"]


def test_font_sniffing():
    assert sniff_font_format(b"wOF2....") == "woff2"
    assert sniff_font_format(b"wOFF....") == "woff"
    assert sniff_font_format(b"OTTO....") == "opentype"
    assert sniff_font_format(b"\x00\x01\x00\x00....") == "truetype"
    assert not is_renderer_compatible(b"wOF2....")
    assert not is_renderer_compatible(b"")
    assert is_renderer_compatible(b"\x00\x01\x00\x00....")
