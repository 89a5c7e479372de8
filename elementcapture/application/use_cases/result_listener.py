from __future__ import annotations

import asyncio
import logging
import uuid

from elementcapture.application.dto.messages import (
    CancelSelectionMessage,
    MessageModel,
    RenderCompleteMessage,
    SelectionCancelledMessage,
    StartSelectionMessage,
    message_to_result,
)
from elementcapture.application.ports.message_bus import MessageBusPort
from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.domain.entities.capture import CaptureResult, normalize_format

STATUS_READY = "Ready to capture an element."
STATUS_SELECTING = "Hover and click the element to capture. Press Esc to cancel."
STATUS_CAPTURED = "Image captured successfully."
STATUS_CANCELLED = "Selection cancelled."


class ResultListener:
    """
    UI-side consumer of capture results.

    Only messages for the request it is waiting on are handled; results of a
    superseded request are ignored. On reattach the last persisted result is
    replayed through the same filter.
    """

    def __init__(self, bus: MessageBusPort, store: ResultStorePort) -> None:
        self._bus = bus
        self._store = store
        self._current_request_id: str | None = None
        self._last_result: CaptureResult | None = None
        self._status = STATUS_READY
        self._done = asyncio.Event()
        self._logger = logging.getLogger(__name__)

    @property
    def current_request_id(self) -> str | None:
        return self._current_request_id

    @property
    def last_result(self) -> CaptureResult | None:
        return self._last_result

    @property
    def status(self) -> str:
        return self._status

    async def start_selection(self, format: str = "png", quality: float = 0.92) -> str:
        self._clear_stored()
        request_id = uuid.uuid4().hex
        self._current_request_id = request_id
        self._last_result = None
        self._done = asyncio.Event()
        self._status = STATUS_SELECTING
        await self._bus.publish(
            StartSelectionMessage(request_id=request_id, format=normalize_format(format), quality=quality)
        )
        return request_id

    async def cancel_selection(self) -> None:
        request_id = self._current_request_id
        if not request_id:
            return
        await self._bus.publish(CancelSelectionMessage(request_id=request_id))
        self._current_request_id = None
        self._status = STATUS_CANCELLED

    def should_handle_message(self, message: MessageModel | CaptureResult | None) -> bool:
        if message is None:
            return False
        request_id = getattr(message, "request_id", None)
        if request_id and self._current_request_id and request_id != self._current_request_id:
            return False
        return True

    async def handle_message(self, message: MessageModel) -> None:
        if not isinstance(message, (RenderCompleteMessage, SelectionCancelledMessage)):
            return
        if not self.should_handle_message(message):
            self._logger.info("Ignoring stale result", extra={"request_id": message.request_id})
            return
        result = message_to_result(message)
        if result is not None:
            self._apply(result)

    def restore_last_result(self) -> bool:
        try:
            result = self._store.get_last()
        except Exception as e:
            self._logger.warning("Failed to restore stored result", extra={"error": str(e)})
            return False
        if result is None or not self.should_handle_message(result):
            return False
        self._apply(result)
        return True

    async def wait(self, timeout: float | None = None) -> CaptureResult | None:
        await asyncio.wait_for(self._done.wait(), timeout=timeout)
        return self._last_result

    def _apply(self, result: CaptureResult) -> None:
        self._current_request_id = None
        if result.cancelled:
            self._status = STATUS_CANCELLED
            self._last_result = None
        elif result.error is not None:
            self._status = f"Capture failed: {result.error}"
            self._last_result = None
        elif result.content() is None:
            self._status = "No image data was returned."
            self._last_result = None
        else:
            self._status = STATUS_CAPTURED
            self._last_result = result
        self._done.set()

    def _clear_stored(self) -> None:
        try:
            self._store.clear()
        except Exception as e:
            self._logger.warning("Failed to clear stored result", extra={"error": str(e)})
