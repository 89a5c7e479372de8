from __future__ import annotations

import base64
import html
import logging
import xml.etree.ElementTree as ET

from elementcapture.application.exceptions import LayoutEngineInitError, RendererError
from elementcapture.application.ports.layout_engine import LayoutEnginePort
from elementcapture.application.utils.font_format import sniff_font_format
from elementcapture.domain.entities.font import FontPayload

SVG_NS = "http://www.w3.org/2000/svg"
XHTML_NS = "http://www.w3.org/1999/xhtml"

_FONT_MIME = {
    "truetype": ("font/ttf", "truetype"),
    "opentype": ("font/otf", "opentype"),
    "collection": ("font/collection", "collection"),
}


class ForeignObjectSvgEngine(LayoutEnginePort):
    """
    Lays out markup by embedding it in an SVG <foreignObject>.

    Fonts are inlined as base64 `@font-face` rules so the document renders
    without network access. The markup must be well-formed XHTML.
    """

    def __init__(self) -> None:
        self._initialized = False
        self._logger = logging.getLogger(__name__)

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, wasm_bytes: bytes | None) -> None:
        if self._initialized:
            return
        if wasm_bytes is not None and not wasm_bytes.startswith(b"\x00asm"):
            raise LayoutEngineInitError("Layout engine module is not a WebAssembly binary")
        self._initialized = True
        self._logger.info("SVG layout engine ready", extra={"reason": f"module_bytes={len(wasm_bytes or b'')}"})

    async def render(
        self,
        markup: str,
        fonts: list[FontPayload],
        width: int,
        height: int,
        background: str,
    ) -> bytes:
        if not self._initialized:
            raise RendererError("Layout engine used before initialization")
        try:
            ET.fromstring(f'<div xmlns="{XHTML_NS}">{markup}</div>')
        except ET.ParseError as e:
            raise RendererError(f"Unparsable markup: {e}") from e

        font_css = "".join(font_face_rule(font) for font in fonts if font.data)
        family_stack = ", ".join([f'"{font.name}"' for font in fonts] + ["sans-serif"])
        bg = html.escape(background or "transparent", quote=True)

        svg = (
            f'<svg xmlns="{SVG_NS}" width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
            f"<defs><style>{html.escape(font_css, quote=False)}</style></defs>"
            f'<rect x="0" y="0" width="100%" height="100%" fill="{bg}"/>'
            f'<foreignObject x="0" y="0" width="100%" height="100%">'
            f'<div xmlns="{XHTML_NS}" style="display:flex;width:{width}px;height:{height}px;'
            f'overflow:hidden;font-family:{html.escape(family_stack, quote=True)}">{markup}</div>'
            f"</foreignObject></svg>"
        )
        return svg.encode("utf-8")


def font_face_rule(font: FontPayload) -> str:
    mime, fmt = _FONT_MIME.get(sniff_font_format(font.data) or "", ("font/ttf", "truetype"))
    encoded = base64.b64encode(font.data or b"").decode("ascii")
    return (
        f'@font-face{{font-family:"{font.name}";font-style:{font.style};font-weight:{font.weight};'
        f'src:url(data:{mime};base64,{encoded}) format("{fmt}");}}'
    )
