from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from elementcapture.application.exceptions import LayoutEngineInitError, RendererError, ResourceFetchError
from elementcapture.application.ports.layout_engine import LayoutEnginePort
from elementcapture.application.ports.rasterizer import RasterizerPort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.utils.font_format import is_renderer_compatible, sniff_font_format
from elementcapture.application.utils.markup import truncate_markup
from elementcapture.domain.entities.capture import MAX_HTML_LENGTH, CaptureFormat, CaptureRequest, CaptureResult
from elementcapture.domain.entities.font import FontPayload, FontSource


class LayoutEngineProvider:
    """
    Process-scoped once-cell around the layout engine.

    Concurrent callers share one in-flight initialization; after success the
    engine is handed out directly. A failed initialization is forgotten so a
    later request can try again.
    """

    def __init__(self, engine: LayoutEnginePort, wasm_path: str | None = None) -> None:
        self._engine = engine
        self._wasm_path = wasm_path
        self._ready = False
        self._task: asyncio.Task[None] | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def ready(self) -> bool:
        return self._ready

    async def get(self) -> LayoutEnginePort:
        if self._ready:
            return self._engine
        if self._task is None:
            self._task = asyncio.ensure_future(self._initialize())
        task = self._task
        try:
            await asyncio.shield(task)
        except LayoutEngineInitError:
            if self._task is task:
                self._task = None
            raise
        except Exception as e:
            if self._task is task:
                self._task = None
            raise LayoutEngineInitError(f"Layout engine initialization failed: {e}") from e
        return self._engine

    async def _initialize(self) -> None:
        wasm_bytes: bytes | None = None
        if self._wasm_path:
            wasm_bytes = await asyncio.to_thread(Path(self._wasm_path).read_bytes)
        await self._engine.initialize(wasm_bytes)
        self._ready = True
        self._logger.info("Layout engine initialized")


class FontPayloadResolver:
    """
    Turns font sources into byte payloads.

    Fetched bytes are cached per URL for the process lifetime; a failed fetch
    evicts its entry so a later request retries it.
    """

    def __init__(
        self,
        fetcher: ResourceFetcherPort,
        fallback_family: str = "Inter",
        fallback_url: str | None = None,
        fallback_path: str | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._fallback_family = fallback_family
        self._fallback_url = fallback_url
        self._fallback_path = fallback_path
        self._bytes: dict[str, bytes] = {}
        self._inflight: dict[str, asyncio.Task[bytes | None]] = {}
        self._fallback: FontPayload | None = None
        self._logger = logging.getLogger(__name__)

    async def resolve(self, sources: list[FontSource]) -> list[FontPayload]:
        resolved = await asyncio.gather(*(self._resolve_one(source) for source in sources))
        payloads = [payload for payload in resolved if payload is not None]
        if payloads:
            return payloads
        fallback = await self.fallback()
        return [fallback] if fallback is not None else []

    async def fallback(self) -> FontPayload | None:
        if self._fallback is not None:
            return self._fallback
        data: bytes | None = None
        if self._fallback_path:
            try:
                data = await asyncio.to_thread(Path(self._fallback_path).read_bytes)
            except OSError as e:
                self._logger.warning("Fallback font unreadable", extra={"url": self._fallback_path, "error": str(e)})
        if data is None and self._fallback_url:
            data = await self._fetch(self._fallback_url)
        if not is_renderer_compatible(data):
            self._logger.warning("No fallback font available", extra={"family": self._fallback_family})
            return None
        self._fallback = FontPayload(name=self._fallback_family, data=data, weight=400, style="normal")
        return self._fallback

    async def _resolve_one(self, source: FontSource) -> FontPayload | None:
        descriptor = source.descriptor
        if source.data is not None and is_renderer_compatible(source.data):
            return FontPayload(name=descriptor.family, data=source.data, weight=descriptor.weight, style=descriptor.style)

        for url in source.urls:
            data = await self._fetch(url)
            if data is None:
                continue
            if not is_renderer_compatible(data):
                self._logger.info(
                    "Skipping compressed font", extra={"family": descriptor.family, "url": url, "reason": sniff_font_format(data)}
                )
                continue
            return FontPayload(name=descriptor.family, data=data, weight=descriptor.weight, style=descriptor.style)

        self._logger.warning("Font dropped: no usable bytes", extra={"family": descriptor.family})
        return None

    async def _fetch(self, url: str) -> bytes | None:
        if url in self._bytes:
            return self._bytes[url]
        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._download(url))
            self._inflight[url] = task
            task.add_done_callback(lambda done: self._forget(url, done))
        # A caller that times out must not cancel the fetch other requests share.
        return await asyncio.shield(task)

    async def _download(self, url: str) -> bytes | None:
        try:
            data = await self._fetcher.fetch_bytes(url)
        except ResourceFetchError as e:
            self._logger.warning("Font fetch failed", extra={"url": url, "error": str(e)})
            return None
        self._bytes[url] = data
        return data

    def _forget(self, url: str, task: asyncio.Task[bytes | None]) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]


class RenderingService:
    """Received -> LayoutEngineReady -> FontsResolved -> Rendered | Failed."""

    def __init__(
        self,
        engine_provider: LayoutEngineProvider,
        font_resolver: FontPayloadResolver,
        rasterizer: RasterizerPort | None = None,
        max_html_length: int = MAX_HTML_LENGTH,
        timeout_seconds: float | None = 10.0,
    ) -> None:
        self._engine_provider = engine_provider
        self._font_resolver = font_resolver
        self._rasterizer = rasterizer
        self._max_html_length = max_html_length
        self._timeout_seconds = timeout_seconds
        self._logger = logging.getLogger(__name__)

    async def render(self, request: CaptureRequest) -> CaptureResult:
        """Never raises: every failure becomes a result carrying `error`."""
        try:
            if self._timeout_seconds:
                return await asyncio.wait_for(self._render(request), timeout=self._timeout_seconds)
            return await self._render(request)
        except asyncio.TimeoutError:
            self._logger.error("Capture timed out", extra={"request_id": request.request_id})
            return CaptureResult.failed(request.request_id, "Capture timed out", request.format)
        except RendererError as e:
            self._logger.error("Render failed", extra={"request_id": request.request_id, "error": str(e)})
            return CaptureResult.failed(request.request_id, str(e), request.format)
        except Exception as e:
            self._logger.exception("Unexpected render failure", extra={"request_id": request.request_id})
            return CaptureResult.failed(request.request_id, str(e) or type(e).__name__, request.format)

    async def _render(self, request: CaptureRequest) -> CaptureResult:
        markup = truncate_markup(request.html, self._max_html_length)
        if len(markup) < len(request.html):
            self._logger.warning(
                "Markup truncated", extra={"request_id": request.request_id, "reason": f"{len(request.html)} chars"}
            )
        width = max(1, request.width)
        height = max(1, request.height)

        engine = await self._engine_provider.get()
        fonts = await self._font_resolver.resolve(request.fonts)
        svg = await engine.render(markup, fonts, width, height, request.background_color)

        image: bytes | None = None
        if request.format != CaptureFormat.svg.value:
            if self._rasterizer is None:
                raise RendererError(f"No rasterizer available for {request.format} output")
            image = await self._rasterizer.rasterize(
                svg, width, height, request.format, request.quality, request.background_color
            )

        self._logger.info(
            "Render complete",
            extra={"request_id": request.request_id, "format": request.format, "reason": f"fonts={len(fonts)}"},
        )
        return CaptureResult.rendered(
            request_id=request.request_id,
            format=request.format,
            svg=svg.decode("utf-8") if image is None else None,
            image=image,
            fonts=[font.summary() for font in fonts],
            system_fonts=request.system_fonts,
            styles=request.styles,
        )
