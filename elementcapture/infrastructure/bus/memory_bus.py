from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from elementcapture.application.ports.message_bus import MessageBusPort, MessageHandler


class InMemoryMessageBus(MessageBusPort):
    """
    In-process stand-in for the extension runtime's message channel.

    Every subscriber gets one delivery attempt; its failures are logged and
    never reach the publisher. There is no ordering guarantee across
    subscribers.
    """

    def __init__(self) -> None:
        self._handlers: list[MessageHandler] = []
        self._logger = logging.getLogger(__name__)

    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def publish(self, message: Any) -> None:
        handlers = list(self._handlers)
        if not handlers:
            self._logger.debug("No listener for message", extra={"reason": getattr(message, "type", None)})
            return
        outcomes = await asyncio.gather(*(handler(message) for handler in handlers), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                self._logger.warning(
                    "Message delivery failed",
                    extra={"request_id": getattr(message, "request_id", None), "error": str(outcome)},
                )
