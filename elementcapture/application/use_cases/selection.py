from __future__ import annotations

import logging

from elementcapture.application.dto.messages import (
    CancelSelectionMessage,
    ElementSelectedMessage,
    MessageModel,
    SelectionCancelledMessage,
    StartSelectionMessage,
    result_to_message,
)
from elementcapture.application.exceptions import CaptureInputError
from elementcapture.application.ports.message_bus import MessageBusPort
from elementcapture.application.ports.overlay import OverlayPort
from elementcapture.application.ports.page_events import PageEventSourcePort
from elementcapture.application.use_cases.font_collection import FontDescriptorEngine
from elementcapture.application.use_cases.snapshot import DomSnapshotSerializer
from elementcapture.domain.entities.capture import MAX_HTML_LENGTH, CaptureRequest, CaptureResult
from elementcapture.domain.entities.dom import DomNode, Rect
from elementcapture.domain.entities.events import PageEvent, PageEventType
from elementcapture.domain.entities.page import PageSnapshot
from elementcapture.domain.entities.selection_session import SelectionSession, SelectionStatus

ESCAPE_KEY = "Escape"
PRIMARY_BUTTON = 0

# While armed only pointer moves reach the page.
SUPPRESSED_EVENTS = frozenset(t for t in PageEventType if t != PageEventType.pointer_move)


class SelectionStateMachine:
    """
    Interactive element picker for one page.

    Idle -> Armed -> (Completed | Cancelled) -> Idle. At most one session is
    armed; a new start cancels the previous one first. Every exit removes the
    overlay, detaches the page listeners and forgets the target; `outcome`
    keeps how the last session ended once the status is back to idle.
    """

    def __init__(
        self,
        page: PageSnapshot,
        bus: MessageBusPort,
        overlay: OverlayPort,
        font_engine: FontDescriptorEngine,
        serializer: DomSnapshotSerializer | None = None,
        max_dimension: int = 4096,
        max_html_length: int = MAX_HTML_LENGTH,
        events: PageEventSourcePort | None = None,
    ) -> None:
        self._page = page
        self._events = events
        self._bus = bus
        self._overlay = overlay
        self._font_engine = font_engine
        self._serializer = serializer or DomSnapshotSerializer()
        self._max_dimension = max_dimension
        self._max_html_length = max_html_length
        self._session: SelectionSession | None = None
        self._generation = 0
        self._status = SelectionStatus.idle
        self._outcome: SelectionStatus | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def status(self) -> SelectionStatus:
        return self._status

    @property
    def outcome(self) -> SelectionStatus | None:
        return self._outcome

    @property
    def session(self) -> SelectionSession | None:
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None and self._session.active

    async def handle_message(self, message: MessageModel) -> None:
        if isinstance(message, StartSelectionMessage):
            await self.start(message.request_id, format=message.format, quality=message.quality)
        elif isinstance(message, CancelSelectionMessage):
            if self.active and self._session is not None and message.request_id == self._session.request_id:
                await self.cancel()

    async def start(self, request_id: str, format: str = "png", quality: float = 0.92) -> None:
        if self.active:
            await self._stop(cancelled=True)
        self._generation += 1
        self._session = SelectionSession(
            request_id=request_id,
            generation=self._generation,
            format=format,
            quality=quality,
        )
        self._status = SelectionStatus.armed
        if self._events is not None:
            await self._events.attach(SUPPRESSED_EVENTS)
        self._logger.info("Selection armed", extra={"request_id": request_id})

    async def cancel(self) -> None:
        if self.active:
            await self._stop(cancelled=True)

    def retarget(self, page: PageSnapshot | None) -> None:
        """Aim the armed session at a fresh snapshot whose root is the element under the pointer."""
        if self._session is None or not self._session.active:
            return
        if page is None:
            self._session.current_target = None
            return
        self._page = page
        self._session.current_target = page.root

    async def handle_event(self, event: PageEvent) -> bool:
        """Feed one page event; returns True when the page must not see it."""
        if not self.active or self._session is None:
            return False

        if event.type == PageEventType.pointer_move:
            target = event.target
            if target is not None and target.is_element:
                self._session.current_target = target
                await self._overlay.show(_highlight_rect(target.rect), describe_element(target))
            return False

        if event.type == PageEventType.click:
            if event.button == PRIMARY_BUTTON:
                await self.confirm()
            return True

        if event.type == PageEventType.key_down and event.key == ESCAPE_KEY:
            await self._stop(cancelled=True)
            return True

        return event.type in SUPPRESSED_EVENTS

    async def confirm(self) -> CaptureRequest | None:
        """
        Snapshot the hovered element and dispatch an `element-selected` request.

        The markup and style trace are built synchronously before any await;
        font resolution runs afterwards and its outcome is discarded if a new
        session started in the meantime.
        """
        session = self._session
        if session is None or not session.active:
            return None
        request_id = session.request_id
        generation = session.generation
        target = session.current_target

        try:
            target = self._validate_target(target)
        except CaptureInputError as e:
            await self._stop(cancelled=False, status=SelectionStatus.completed)
            self._logger.warning("Capture not attempted", extra={"request_id": request_id, "reason": str(e)})
            await self._bus.publish(result_to_message(CaptureResult.failed(request_id, str(e), session.format)))
            return None

        snapshot = self._serializer.serialize(target, self._page.base_url)
        discovery = self._font_engine.discover(target)
        rect = target.rect
        await self._stop(cancelled=False, status=SelectionStatus.completed)

        fonts = await self._font_engine.resolve(discovery.fonts, self._page)
        if generation != self._generation:
            self._logger.info("Discarding superseded capture", extra={"request_id": request_id})
            return None

        request = CaptureRequest.build(
            request_id=request_id,
            html=snapshot.html,
            width=rect.width,
            height=rect.height,
            background_color=self._page.body_background or "#ffffff",
            fonts=fonts,
            system_fonts=discovery.system_fonts,
            styles=snapshot.styles,
            format=session.format,
            quality=session.quality,
            max_html_length=self._max_html_length,
        )
        self._logger.info(
            "Element selected",
            extra={"request_id": request_id, "format": request.format, "reason": f"{request.width}x{request.height}"},
        )
        await self._bus.publish(ElementSelectedMessage.from_request(request))
        return request

    def _validate_target(self, target: DomNode | None) -> DomNode:
        if target is None:
            raise CaptureInputError("No element selected")
        rect = target.rect
        if rect.width == 0 or rect.height == 0:
            raise CaptureInputError("Element has no visible dimensions")
        if rect.width > self._max_dimension or rect.height > self._max_dimension:
            raise CaptureInputError(
                f"Element too large (max {self._max_dimension}x{self._max_dimension} pixels)"
            )
        return target

    async def _stop(self, cancelled: bool, status: SelectionStatus | None = None) -> None:
        session = self._session
        request_id = session.request_id if session is not None else None
        if session is not None:
            session.active = False
            session.current_target = None
        self._session = None
        await self._overlay.remove()
        if self._events is not None:
            await self._events.detach()
        self._status = status or (SelectionStatus.cancelled if cancelled else SelectionStatus.completed)
        self._outcome = self._status
        if cancelled and request_id:
            self._logger.info("Selection cancelled", extra={"request_id": request_id})
            await self._bus.publish(SelectionCancelledMessage(request_id=request_id))
        self._status = SelectionStatus.idle


def describe_element(node: DomNode) -> str:
    return f"{node.tag}#{node.id}" if node.id else node.tag


def _highlight_rect(rect: Rect) -> Rect:
    return Rect(x=rect.x, y=rect.y, width=max(rect.width, 1), height=max(rect.height, 1))
