"""
Tests for the HTTP surface.
"""

from __future__ import annotations

import tempfile

from fastapi.testclient import TestClient

from elementcapture.application.ports.layout_engine import LayoutEnginePort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.use_cases.coordinator import CaptureCoordinator
from elementcapture.application.use_cases.download_result import DownloadResultUseCase
from elementcapture.application.use_cases.render_capture import (
    FontPayloadResolver,
    LayoutEngineProvider,
    RenderingService,
)
from elementcapture.infrastructure.bus.memory_bus import InMemoryMessageBus
from elementcapture.infrastructure.store.memory_store import MemoryResultStore
from elementcapture import main
from elementcapture.core.config import settings
from elementcapture.main import app
from elementcapture.wiring.dependencies import get_capture_coordinator, get_download_use_case, get_result_store


class EchoEngine(LayoutEnginePort):
    async def initialize(self, wasm_bytes):
        return None

    async def render(self, markup, fonts, width, height, background) -> bytes:
        return f'<svg width="{width}" height="{height}">{markup}</svg>'.encode("utf-8")


class FontFetcher(ResourceFetcherPort):
    async def fetch_text(self, url):
        raise NotImplementedError

    async def fetch_bytes(self, url):
        return b"\x00\x01\x00\x00fake"


def _client(store: MemoryResultStore, download_dir: str) -> TestClient:
    rendering = RenderingService(
        engine_provider=LayoutEngineProvider(EchoEngine()),
        font_resolver=FontPayloadResolver(FontFetcher(), fallback_url="https://fonts.example.com/inter.ttf"),
    )
    coordinator = CaptureCoordinator(rendering=rendering, store=store, bus=InMemoryMessageBus())
    app.dependency_overrides[get_capture_coordinator] = lambda: coordinator
    app.dependency_overrides[get_result_store] = lambda: store
    app.dependency_overrides[get_download_use_case] = lambda: DownloadResultUseCase(store, download_dir)
    return TestClient(app)


def _selected(fmt: str = "svg") -> dict:
    return {
        "type": "element-selected",
        "requestId": "req-1",
        "payload": {
            "html": "<p>hello</p>",
            "width": 99.6,
            "height": 40,
            "backgroundColor": "#fafafa",
            "fonts": [],
            "systemFonts": [{"family": "sans-serif", "style": "normal", "weight": 400}],
            "styles": [{"selector": "p:nth-child(1)", "cssText": "color:red;"}],
            "format": fmt,
        },
    }


def test_health():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(MemoryResultStore(), tmpdir)
        assert client.get("/health").json() == {"status": "ok"}
    app.dependency_overrides.clear()


def test_render_returns_render_complete_and_stores_it():
    store = MemoryResultStore()
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(store, tmpdir)

        response = client.post("/v1/render", json=_selected())
        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "render-complete"
        assert body["requestId"] == "req-1"
        assert body["svg"] == '<svg width="100" height="40"><p>hello</p></svg>'
        assert body["mimeType"] == "image/svg+xml"
        assert body["systemFonts"] == [{"family": "sans-serif", "style": "normal", "weight": 400}]
        assert body["styles"] == [{"selector": "p:nth-child(1)", "cssText": "color:red;"}]
        assert "error" not in body

        last = client.get("/v1/results/last")
        assert last.status_code == 200
        assert last.json()["svg"] == body["svg"]
    app.dependency_overrides.clear()


def test_render_errors_are_reported_in_body():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(MemoryResultStore(), tmpdir)
        response = client.post("/v1/render", json=_selected(fmt="png"))
        assert response.status_code == 200
        assert response.json()["error"] == "No rasterizer available for png output"
    app.dependency_overrides.clear()


def test_invalid_payload_is_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(MemoryResultStore(), tmpdir)
        assert client.post("/v1/render", json={"type": "element-selected"}).status_code == 422
        assert client.post("/v1/render", json={**_selected(), "type": "render-complete"}).status_code == 422
    app.dependency_overrides.clear()


def test_cancelled_is_stored():
    store = MemoryResultStore()
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(store, tmpdir)
        response = client.post("/v1/cancelled", json={"type": "selection-cancelled", "requestId": "c1"})
        assert response.json() == {"type": "selection-cancelled", "requestId": "c1"}
        assert store.get_last().cancelled
    app.dependency_overrides.clear()


def test_last_result_lifecycle_and_download():
    store = MemoryResultStore()
    with tempfile.TemporaryDirectory() as tmpdir:
        client = _client(store, tmpdir)
        assert client.get("/v1/results/last").status_code == 404
        assert client.post("/v1/downloads").status_code == 404

        client.post("/v1/render", json=_selected())
        download = client.post("/v1/downloads", json={"filename": "card.svg"})
        assert download.status_code == 200
        assert download.json()["filename"] == "card.svg"
        assert download.json()["mime_type"] == "image/svg+xml"

        assert client.delete("/v1/results/last").json() == {"cleared": True}
        assert client.get("/v1/results/last").status_code == 404
    app.dependency_overrides.clear()


def test_serve_runs_the_app_with_uvicorn(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main.serve()

    assert calls == [(app, {"host": settings.HOST, "port": settings.PORT, "log_config": None})]
