from __future__ import annotations

import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from elementcapture.application.exceptions import CaptureInputError
from elementcapture.application.ports.font_loader import FontLoaderPort
from elementcapture.application.ports.overlay import OverlayPort
from elementcapture.application.ports.page_events import PageEventSourcePort
from elementcapture.application.use_cases.selection import PRIMARY_BUTTON, SelectionStateMachine
from elementcapture.application.utils.css_values import SUPPORTED_PROPERTIES
from elementcapture.domain.entities.dom import DomNode, Rect
from elementcapture.domain.entities.events import PageEvent, PageEventType
from elementcapture.domain.entities.page import FontFace, PageSnapshot

OVERLAY_ID = "__element_capture_overlay__"
EVENT_BINDING = "__elementCaptureEvent"

WAIT_FOR_IMAGES_JS = """
async ([selector, timeoutMs]) => {
  const root = document.querySelector(selector);
  if (!root) return;
  const images = Array.from(root.querySelectorAll('img'));
  await Promise.all(images.map((img) => {
    if (img.complete && img.naturalHeight !== 0) return Promise.resolve();
    return new Promise((resolve) => {
      img.addEventListener('load', resolve, { once: true });
      img.addEventListener('error', resolve, { once: true });
      setTimeout(resolve, timeoutMs);
    });
  }));
}
"""

SNAPSHOT_JS = """
([selector, properties]) => {
  const root = document.querySelector(selector);
  if (!root) return null;
  const walk = (node) => {
    if (node.nodeType === Node.TEXT_NODE) return { tag: '#text', text: node.textContent };
    if (node.nodeType !== Node.ELEMENT_NODE) return null;
    const computed = window.getComputedStyle(node);
    const style = {};
    for (const prop of properties) {
      const value = computed.getPropertyValue(prop);
      if (value) style[prop] = value;
    }
    const attributes = {};
    for (const attr of Array.from(node.attributes)) attributes[attr.name] = attr.value;
    const r = node.getBoundingClientRect();
    return {
      tag: node.tagName.toLowerCase(),
      attributes,
      style,
      rect: { x: r.left, y: r.top, width: r.width, height: r.height },
      complete: node.tagName === 'IMG' ? node.complete : true,
      children: Array.from(node.childNodes).map(walk).filter(Boolean),
    };
  };
  const stylesheets = Array.from(document.styleSheets).map((sheet) => {
    try {
      return { href: sheet.href, cssText: Array.from(sheet.cssRules).map((r) => r.cssText).join('\\n') };
    } catch (e) {
      return { href: sheet.href, cssText: null };
    }
  });
  const fontFaces = Array.from(document.fonts).map((face) => ({
    family: face.family, style: face.style, weight: face.weight, status: face.status,
  }));
  return {
    url: document.URL,
    baseURI: document.baseURI,
    root: walk(root),
    stylesheets,
    fontFaces,
    bodyBackground: document.body ? window.getComputedStyle(document.body).backgroundColor : '#ffffff',
  };
}
"""

SHOW_OVERLAY_JS = """
([id, rect, label]) => {
  let overlay = document.getElementById(id);
  if (!overlay) {
    overlay = document.createElement('div');
    overlay.id = id;
    overlay.style.cssText = 'position:fixed;pointer-events:none;z-index:2147483646;top:0;left:0;width:100%;height:100%';
    const box = document.createElement('div');
    box.style.cssText = 'position:absolute;border:2px solid #2563eb;background:rgba(37,99,235,0.15);border-radius:4px';
    const tag = document.createElement('div');
    tag.style.cssText = 'position:absolute;padding:2px 6px;font:12px monospace;background:#2563eb;color:#fff;border-radius:4px;transform:translateY(-100%);white-space:nowrap';
    overlay.appendChild(box);
    overlay.appendChild(tag);
    document.documentElement.appendChild(overlay);
  }
  const [box, tag] = overlay.children;
  box.style.width = `${rect.width}px`;
  box.style.height = `${rect.height}px`;
  box.style.transform = `translate(${rect.x}px, ${rect.y}px)`;
  tag.textContent = label;
  tag.style.left = `${rect.x}px`;
  tag.style.top = `${Math.max(rect.y - 4, 0)}px`;
}
"""

REMOVE_OVERLAY_JS = """
(id) => { const overlay = document.getElementById(id); if (overlay) overlay.remove(); }
"""

LOAD_FONT_JS = """
async ([family, style, weight]) => {
  try {
    await document.fonts.load(`${style} ${weight} 16px "${family}"`);
  } catch (e) {}
  const face = Array.from(document.fonts).find((f) => f.family.replace(/["']/g, '') === family);
  return face ? face.status : 'error';
}
"""

LISTEN_JS = """
([binding, types, suppressed]) => {
  if (window.__elementCaptureListener) return;
  const pathOf = (el) => {
    const parts = [];
    for (let node = el; node && node.nodeType === Node.ELEMENT_NODE; node = node.parentElement) {
      const tag = node.tagName.toLowerCase();
      const parent = node.parentElement;
      parts.unshift(parent ? `${tag}:nth-child(${Array.prototype.indexOf.call(parent.children, node) + 1})` : tag);
    }
    return parts.join(' > ');
  };
  let last = null;
  const listener = (event) => {
    if (suppressed.includes(event.type)) {
      event.preventDefault();
      event.stopImmediatePropagation();
    }
    const el = event.target instanceof Element ? event.target : null;
    if (event.type === 'mousemove') {
      if (el === last) return;
      last = el;
    }
    const r = el ? el.getBoundingClientRect() : null;
    window[binding]({
      type: event.type,
      key: event.key || null,
      button: event.button || 0,
      path: el ? pathOf(el) : null,
      tag: el ? el.tagName.toLowerCase() : null,
      id: el ? el.id : null,
      rect: r ? { x: r.left, y: r.top, width: r.width, height: r.height } : null,
    }).catch(() => {});
  };
  for (const type of types) window.addEventListener(type, listener, true);
  window.__elementCaptureListener = { listener, types };
}
"""

UNLISTEN_JS = """
() => {
  const state = window.__elementCaptureListener;
  if (!state) return;
  for (const type of state.types) window.removeEventListener(type, state.listener, true);
  delete window.__elementCaptureListener;
}
"""


class PlaywrightPageDriver:
    """Reads a live page into a PageSnapshot."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self._logger = logging.getLogger(__name__)

    async def snapshot(self, selector: str, image_wait_seconds: float = 5.0) -> PageSnapshot:
        await self._page.evaluate(WAIT_FOR_IMAGES_JS, [selector, int(image_wait_seconds * 1000)])
        payload: dict[str, Any] | None = await self._page.evaluate(
            SNAPSHOT_JS, [selector, list(SUPPORTED_PROPERTIES)]
        )
        if not payload or not payload.get("root"):
            raise CaptureInputError(f"No element matches {selector!r}")
        self._logger.info("Page snapshot taken", extra={"url": payload.get("url")})
        return PageSnapshot.from_payload(payload)


class PlaywrightOverlay(OverlayPort):
    def __init__(self, page: Page) -> None:
        self._page = page

    async def show(self, rect: Rect, label: str) -> None:
        await self._page.evaluate(
            SHOW_OVERLAY_JS,
            [OVERLAY_ID, {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}, label],
        )

    async def remove(self) -> None:
        await self._page.evaluate(REMOVE_OVERLAY_JS, OVERLAY_ID)


class PlaywrightFontLoader(FontLoaderPort):
    def __init__(self, page: Page) -> None:
        self._page = page
        self._logger = logging.getLogger(__name__)

    async def load(self, face: FontFace) -> FontFace:
        try:
            status = await self._page.evaluate(LOAD_FONT_JS, [face.family, face.style, face.weight])
        except PlaywrightError as e:
            self._logger.warning("Font load failed", extra={"family": face.family, "error": str(e)})
            return face
        return FontFace(
            family=face.family,
            style=face.style,
            weight=face.weight,
            status=str(status),
            data=face.data,
        )


class PlaywrightPageEvents(PageEventSourcePort):
    """
    Capture-phase listeners on a live page, forwarded to a selection session.

    Suppression happens in the page itself because a binding call cannot
    answer synchronously; the Python side receives every event afterwards.
    A primary click re-snapshots the element under the pointer so the session
    captures the live element with its computed styles.
    """

    def __init__(self, page: Page, driver: PlaywrightPageDriver, image_wait_seconds: float = 5.0) -> None:
        self._page = page
        self._driver = driver
        self._image_wait_seconds = image_wait_seconds
        self._machine: SelectionStateMachine | None = None
        self._exposed = False
        self._logger = logging.getLogger(__name__)

    def bind(self, machine: SelectionStateMachine) -> None:
        self._machine = machine

    async def attach(self, suppressed: frozenset[PageEventType]) -> None:
        if not self._exposed:
            await self._page.expose_binding(EVENT_BINDING, self._on_event)
            self._exposed = True
        await self._page.evaluate(
            LISTEN_JS,
            [EVENT_BINDING, [t.value for t in PageEventType], sorted(t.value for t in suppressed)],
        )

    async def detach(self) -> None:
        await self._page.evaluate(UNLISTEN_JS)

    async def _on_event(self, source: dict[str, Any], payload: dict[str, Any]) -> bool:
        if self._machine is None or not isinstance(payload, dict):
            return False
        try:
            event_type = PageEventType(payload.get("type"))
        except ValueError:
            return False
        button = int(payload.get("button") or 0)
        path = payload.get("path")

        target: DomNode | None = None
        if event_type == PageEventType.click and button == PRIMARY_BUTTON and self._machine.active:
            snapshot: PageSnapshot | None = None
            if path:
                try:
                    snapshot = await self._driver.snapshot(path, self._image_wait_seconds)
                except CaptureInputError as e:
                    self._logger.warning("Clicked element vanished", extra={"reason": str(e)})
            self._machine.retarget(snapshot)
            target = snapshot.root if snapshot is not None else None
        elif path:
            target = DomNode(
                tag=str(payload.get("tag") or "div"),
                attributes={"id": str(payload.get("id") or "")},
                rect=Rect.from_payload(payload.get("rect")),
            )

        return await self._machine.handle_event(
            PageEvent(type=event_type, target=target, key=payload.get("key"), button=button)
        )
