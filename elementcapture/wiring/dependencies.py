from functools import lru_cache
import logging

from elementcapture.core.config import settings
from elementcapture.application.ports.font_loader import FontLoaderPort
from elementcapture.application.ports.message_bus import MessageBusPort
from elementcapture.application.ports.rasterizer import RasterizerPort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.use_cases.coordinator import CaptureCoordinator
from elementcapture.application.use_cases.download_result import DownloadResultUseCase
from elementcapture.application.use_cases.font_collection import FontDescriptorEngine, StylesheetFontFaceCollector
from elementcapture.application.use_cases.render_capture import (
    FontPayloadResolver,
    LayoutEngineProvider,
    RenderingService,
)
from elementcapture.infrastructure.bus.memory_bus import InMemoryMessageBus
from elementcapture.infrastructure.http.resource_fetcher import HttpxResourceFetcher
from elementcapture.infrastructure.renderer.svg_engine import ForeignObjectSvgEngine
from elementcapture.infrastructure.store.json_store import JsonResultStore
from elementcapture.infrastructure.store.memory_store import MemoryResultStore


_result_store: MemoryResultStore | JsonResultStore | None = None


@lru_cache
def get_resource_fetcher() -> ResourceFetcherPort:
    return HttpxResourceFetcher(timeout=settings.FETCH_TIMEOUT_SECONDS)


@lru_cache
def get_stylesheet_collector() -> StylesheetFontFaceCollector:
    return StylesheetFontFaceCollector(fetcher=get_resource_fetcher())


def get_font_engine(loader: FontLoaderPort | None = None) -> FontDescriptorEngine:
    return FontDescriptorEngine(collector=get_stylesheet_collector(), loader=loader)


@lru_cache
def get_layout_engine_provider() -> LayoutEngineProvider:
    return LayoutEngineProvider(
        engine=ForeignObjectSvgEngine(),
        wasm_path=settings.LAYOUT_ENGINE_WASM_PATH,
    )


@lru_cache
def get_font_payload_resolver() -> FontPayloadResolver:
    return FontPayloadResolver(
        fetcher=get_resource_fetcher(),
        fallback_family=settings.FALLBACK_FONT_FAMILY,
        fallback_url=settings.FALLBACK_FONT_URL,
        fallback_path=settings.FALLBACK_FONT_PATH,
    )


@lru_cache
def get_rasterizer() -> RasterizerPort | None:
    logger = logging.getLogger(__name__)
    if settings.RASTERIZER.lower() == "playwright":
        from elementcapture.infrastructure.renderer.playwright_rasterizer import PlaywrightRasterizer

        return PlaywrightRasterizer()
    logger.info("No rasterizer configured, only svg output is available", extra={"reason": settings.RASTERIZER})
    return None


def get_rendering_service() -> RenderingService:
    return RenderingService(
        engine_provider=get_layout_engine_provider(),
        font_resolver=get_font_payload_resolver(),
        rasterizer=get_rasterizer(),
        max_html_length=settings.MAX_HTML_LENGTH,
        timeout_seconds=settings.CAPTURE_TIMEOUT_SECONDS,
    )


def get_result_store() -> MemoryResultStore | JsonResultStore:
    global _result_store
    if _result_store is None:
        if settings.RESULT_STORE.lower() == "json":
            _result_store = JsonResultStore(path=settings.RESULT_STORE_PATH)
        else:
            _result_store = MemoryResultStore()
    return _result_store


@lru_cache
def get_message_bus() -> MessageBusPort:
    return InMemoryMessageBus()


def get_capture_coordinator() -> CaptureCoordinator:
    return CaptureCoordinator(
        rendering=get_rendering_service(),
        store=get_result_store(),
        bus=get_message_bus(),
        max_html_length=settings.MAX_HTML_LENGTH,
    )


def get_download_use_case() -> DownloadResultUseCase:
    return DownloadResultUseCase(store=get_result_store(), download_dir=settings.DOWNLOAD_DIR)
