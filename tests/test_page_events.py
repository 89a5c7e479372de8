"""
Tests for forwarding live page events into the selection session.
"""

from __future__ import annotations

import asyncio

from elementcapture.application.dto.messages import ElementSelectedMessage, SelectionCancelledMessage
from elementcapture.application.exceptions import CaptureInputError, ResourceFetchError
from elementcapture.application.ports.overlay import OverlayPort
from elementcapture.application.ports.resource_fetcher import ResourceFetcherPort
from elementcapture.application.use_cases.font_collection import FontDescriptorEngine, StylesheetFontFaceCollector
from elementcapture.application.use_cases.selection import SelectionStateMachine
from elementcapture.domain.entities.dom import DomNode, Rect, text_node
from elementcapture.domain.entities.page import PageSnapshot
from elementcapture.domain.entities.selection_session import SelectionStatus
from elementcapture.infrastructure.browser.playwright_page import (
    EVENT_BINDING,
    LISTEN_JS,
    UNLISTEN_JS,
    PlaywrightPageEvents,
)
from elementcapture.infrastructure.bus.memory_bus import InMemoryMessageBus

CARD_PATH = "html > body:nth-child(2) > div:nth-child(1)"


class FakePage:
    def __init__(self) -> None:
        self.bindings: dict[str, object] = {}
        self.scripts: list[tuple[str, object]] = []

    async def expose_binding(self, name, callback) -> None:
        assert name not in self.bindings
        self.bindings[name] = callback

    async def evaluate(self, script, arg=None):
        self.scripts.append((script, arg))

    def ran(self, script: str) -> list:
        return [arg for s, arg in self.scripts if s == script]


class FakeDriver:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.selectors: list[str] = []

    async def snapshot(self, selector: str, image_wait_seconds: float = 5.0) -> PageSnapshot:
        self.selectors.append(selector)
        if self.fail:
            raise CaptureInputError(f"No element matches {selector!r}")
        card = DomNode(
            tag="div",
            attributes={"id": "card"},
            computed_style={"color": "rgb(1, 2, 3)"},
            rect=Rect(0, 0, 200, 80),
            children=[text_node("Live")],
        )
        return PageSnapshot(url="https://example.com/", root=card, body_background="rgb(9, 9, 9)")


class FakeOverlay(OverlayPort):
    def __init__(self) -> None:
        self.labels: list[str] = []

    async def show(self, rect: Rect, label: str) -> None:
        self.labels.append(label)

    async def remove(self) -> None:
        pass


class NoFetcher(ResourceFetcherPort):
    async def fetch_text(self, url: str) -> str:
        raise ResourceFetchError("offline")

    async def fetch_bytes(self, url: str) -> bytes:
        raise ResourceFetchError("offline")


def _setup(driver: FakeDriver | None = None):
    page = FakePage()
    driver = driver or FakeDriver()
    events = PlaywrightPageEvents(page, driver, image_wait_seconds=0.1)
    bus = InMemoryMessageBus()
    overlay = FakeOverlay()
    machine = SelectionStateMachine(
        page=PageSnapshot(url="https://example.com/", root=DomNode(tag="body")),
        bus=bus,
        overlay=overlay,
        font_engine=FontDescriptorEngine(StylesheetFontFaceCollector(NoFetcher())),
        events=events,
    )
    events.bind(machine)
    messages: list = []

    async def record(message) -> None:
        messages.append(message)

    bus.subscribe(record)
    return page, driver, machine, overlay, messages


def _payload(type: str, **extra) -> dict:
    payload = {"type": type, "key": None, "button": 0, "path": CARD_PATH, "tag": "div", "id": "card",
               "rect": {"x": 5, "y": 6, "width": 100, "height": 40}}
    payload.update(extra)
    return payload


def test_start_installs_listeners_that_suppress_everything_but_moves():
    page, _, machine, _, _ = _setup()

    async def run():
        await machine.start("r1")
        await machine.start("r2")

    asyncio.run(run())

    assert list(page.bindings) == [EVENT_BINDING]
    [first, second] = page.ran(LISTEN_JS)
    binding, types, suppressed = first
    assert binding == EVENT_BINDING
    assert "mousemove" in types and "mousemove" not in suppressed
    assert {"click", "mousedown", "mouseup", "keydown"} <= set(suppressed)
    assert len(page.ran(UNLISTEN_JS)) == 1


def test_hover_then_click_captures_the_live_element():
    page, driver, machine, overlay, messages = _setup()

    async def run():
        await machine.start("r1", format="svg")
        on_event = page.bindings[EVENT_BINDING]
        move = await on_event({}, _payload("mousemove"))
        down = await on_event({}, _payload("mousedown"))
        click = await on_event({}, _payload("click"))
        return move, down, click

    move, down, click = asyncio.run(run())

    assert (move, down, click) == (False, True, True)
    assert overlay.labels == ["div#card"]
    assert driver.selectors == [CARD_PATH]
    [selected] = [m for m in messages if isinstance(m, ElementSelectedMessage)]
    assert (selected.payload.width, selected.payload.height) == (200, 80)
    assert selected.payload.background_color == "rgb(9, 9, 9)"
    assert "Live" in selected.payload.html
    assert machine.status == SelectionStatus.idle
    assert machine.outcome == SelectionStatus.completed
    assert len(page.ran(UNLISTEN_JS)) == 1


def test_escape_from_the_page_cancels_and_detaches():
    page, _, machine, _, messages = _setup()

    async def run():
        await machine.start("esc")
        return await page.bindings[EVENT_BINDING]({}, _payload("keydown", key="Escape", path=None))

    suppressed = asyncio.run(run())

    assert suppressed is True
    assert [m.request_id for m in messages if isinstance(m, SelectionCancelledMessage)] == ["esc"]
    assert machine.outcome == SelectionStatus.cancelled
    assert len(page.ran(UNLISTEN_JS)) == 1


def test_vanished_click_target_reports_no_element():
    page, _, machine, _, messages = _setup(FakeDriver(fail=True))

    async def run():
        await machine.start("gone")
        await page.bindings[EVENT_BINDING]({}, _payload("mousemove"))
        await page.bindings[EVENT_BINDING]({}, _payload("click"))

    asyncio.run(run())

    [result] = [m for m in messages if not isinstance(m, SelectionCancelledMessage)]
    assert result.error == "No element selected"


def test_events_after_detach_are_ignored():
    page, driver, machine, _, messages = _setup()

    async def run():
        await machine.start("r1")
        await machine.cancel()
        return await page.bindings[EVENT_BINDING]({}, _payload("click"))

    assert asyncio.run(run()) is False
    assert driver.selectors == []
