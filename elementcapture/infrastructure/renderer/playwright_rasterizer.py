from __future__ import annotations

import html
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from elementcapture.application.exceptions import RendererError
from elementcapture.application.ports.rasterizer import RasterizerPort
from elementcapture.domain.entities.capture import CaptureFormat


class PlaywrightRasterizer(RasterizerPort):
    """Rasterizes SVG documents with headless Chromium."""

    def __init__(self, headless: bool = True) -> None:
        self._headless = headless
        self._logger = logging.getLogger(__name__)

    async def rasterize(
        self,
        svg: bytes,
        width: int,
        height: int,
        format: str,
        quality: float,
        background: str | None,
    ) -> bytes:
        image_type = "jpeg" if format == CaptureFormat.jpeg.value else "png"
        if image_type == "jpeg" and not background:
            background = "#ffffff"
        bg = html.escape(background or "transparent", quote=True)
        document = (
            "<!DOCTYPE html><html><head><style>"
            f"html,body{{margin:0;padding:0;background:{bg};}}"
            "</style></head><body>"
            f"{svg.decode('utf-8')}"
            "</body></html>"
        )

        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=self._headless)
                try:
                    page = await browser.new_page(viewport={"width": width, "height": height})
                    await page.set_content(document, wait_until="load")
                    options: dict[str, object] = {
                        "type": image_type,
                        "clip": {"x": 0, "y": 0, "width": width, "height": height},
                    }
                    if image_type == "jpeg":
                        options["quality"] = max(0, min(100, int(round(quality * 100))))
                    else:
                        options["omit_background"] = background is None
                    image = await page.screenshot(**options)
                finally:
                    await browser.close()
        except PlaywrightError as e:
            raise RendererError(f"Rasterization failed: {e}") from e

        self._logger.info("Rasterized capture", extra={"format": image_type, "reason": f"{width}x{height}"})
        return image
