#!/usr/bin/env python3
"""
Local capture harness (no HTTP).

Usage:
  python3 scripts/capture_local.py https://example.com --selector "main h1" --format png

What it does:
- Opens the page in headless Chromium and snapshots the selected element
- Arms the selection session and moves the mouse to the centre of --selector and clicks
  (or, with --interactive, waits for you to pick an element in a visible browser)
- Renders through the same coordinator the HTTP service uses
- Writes the image to the download directory and prints the path
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from playwright.async_api import async_playwright

from elementcapture.application.dto.messages import (
    CancelSelectionMessage,
    ElementSelectedMessage,
    RenderCompleteMessage,
    SelectionCancelledMessage,
    StartSelectionMessage,
)
from elementcapture.application.use_cases.download_result import DownloadResultUseCase
from elementcapture.application.use_cases.result_listener import ResultListener
from elementcapture.application.use_cases.selection import SelectionStateMachine
from elementcapture.core.config import settings
from elementcapture.infrastructure.browser.playwright_page import (
    PlaywrightFontLoader,
    PlaywrightOverlay,
    PlaywrightPageDriver,
    PlaywrightPageEvents,
)
from elementcapture.infrastructure.bus.memory_bus import InMemoryMessageBus
from elementcapture.wiring.dependencies import (
    get_capture_coordinator,
    get_font_engine,
    get_message_bus,
    get_result_store,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture one page element as an image.")
    parser.add_argument("url")
    parser.add_argument("--selector", default="body")
    parser.add_argument("--format", default="png", choices=["png", "jpeg", "svg"])
    parser.add_argument("--quality", type=float, default=0.92)
    parser.add_argument("--output", default=None, help="File name inside the download directory")
    parser.add_argument("--width", type=int, default=1280)
    parser.add_argument("--height", type=int, default=800)
    parser.add_argument("--interactive", action="store_true", help="Open a visible browser and pick the element by hand")
    return parser.parse_args(argv)


async def _capture(args: argparse.Namespace) -> int:
    # Results and popup commands travel on the broadcast bus; the page reports
    # to the background on its own channel so a relayed cancel never loops back.
    bus = get_message_bus()
    page_channel = InMemoryMessageBus()
    store = get_result_store()
    coordinator = get_capture_coordinator()
    listener = ResultListener(bus=bus, store=store)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=not args.interactive)
        try:
            page = await browser.new_page(viewport={"width": args.width, "height": args.height})
            await page.goto(args.url, wait_until="networkidle")
            await page.locator(args.selector).first.scroll_into_view_if_needed()

            driver = PlaywrightPageDriver(page)
            snapshot = await driver.snapshot(args.selector, settings.IMAGE_WAIT_SECONDS)
            events = PlaywrightPageEvents(page, driver, image_wait_seconds=settings.IMAGE_WAIT_SECONDS)
            machine = SelectionStateMachine(
                page=snapshot,
                bus=page_channel,
                overlay=PlaywrightOverlay(page),
                font_engine=get_font_engine(loader=PlaywrightFontLoader(page)),
                max_dimension=settings.MAX_CAPTURE_DIMENSION,
                max_html_length=settings.MAX_HTML_LENGTH,
                events=events,
            )
            events.bind(machine)

            async def page_side(message) -> None:
                if isinstance(message, (StartSelectionMessage, CancelSelectionMessage)):
                    await machine.handle_message(message)

            async def background_side(message) -> None:
                if isinstance(message, (ElementSelectedMessage, SelectionCancelledMessage)):
                    await coordinator.handle_message(message)

            async def popup_side(message) -> None:
                if isinstance(message, (RenderCompleteMessage, SelectionCancelledMessage)):
                    await listener.handle_message(message)

            bus.subscribe(page_side)
            bus.subscribe(popup_side)
            page_channel.subscribe(background_side)
            page_channel.subscribe(popup_side)

            await listener.start_selection(format=args.format, quality=args.quality)
            if args.interactive:
                print("Hover an element and click it, or press Escape to cancel.")
                result = await listener.wait()
            else:
                rect = snapshot.root.rect
                x, y = rect.x + rect.width / 2, rect.y + rect.height / 2
                await page.mouse.move(x, y)
                await page.mouse.click(x, y)
                result = await listener.wait(timeout=settings.CAPTURE_TIMEOUT_SECONDS * 2)
        finally:
            await browser.close()

    print(listener.status)
    if result is None:
        return 1

    path = DownloadResultUseCase(store=store, download_dir=settings.DOWNLOAD_DIR).execute(filename=args.output)
    print(f"saved: {path}")
    if result.fonts:
        print("fonts: " + ", ".join(f"{f.family} {f.style} {f.weight}" for f in result.fonts))
    if result.system_fonts:
        print("system fonts: " + ", ".join(f.family for f in result.system_fonts))
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(_capture(_parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
