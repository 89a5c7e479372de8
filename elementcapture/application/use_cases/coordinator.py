from __future__ import annotations

import logging

from elementcapture.application.dto.messages import (
    ElementSelectedMessage,
    MessageModel,
    SelectionCancelledMessage,
    result_to_message,
)
from elementcapture.application.ports.message_bus import MessageBusPort
from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.application.use_cases.render_capture import RenderingService
from elementcapture.domain.entities.capture import MAX_HTML_LENGTH, CaptureRequest, CaptureResult


class CaptureCoordinator:
    """Background-side handler: render, persist the last result, then broadcast it."""

    def __init__(
        self,
        rendering: RenderingService,
        store: ResultStorePort,
        bus: MessageBusPort,
        max_html_length: int = MAX_HTML_LENGTH,
    ) -> None:
        self._rendering = rendering
        self._store = store
        self._bus = bus
        self._max_html_length = max_html_length
        self._logger = logging.getLogger(__name__)

    async def handle_message(self, message: MessageModel) -> CaptureResult | None:
        if isinstance(message, ElementSelectedMessage):
            return await self.handle_capture(message.to_request(self._max_html_length))
        if isinstance(message, SelectionCancelledMessage):
            return await self.handle_cancelled(message.request_id)
        return None

    async def handle_capture(self, request: CaptureRequest) -> CaptureResult:
        self._logger.info("Capture received", extra={"request_id": request.request_id, "format": request.format})
        result = await self._rendering.render(request)
        await self._deliver(result)
        return result

    async def handle_cancelled(self, request_id: str) -> CaptureResult:
        result = CaptureResult.selection_cancelled(request_id)
        await self._deliver(result)
        return result

    async def _deliver(self, result: CaptureResult) -> None:
        try:
            self._store.set_last(result)
        except Exception as e:
            self._logger.warning("Failed to persist result", extra={"request_id": result.request_id, "error": str(e)})
        await self._bus.publish(result_to_message(result))
