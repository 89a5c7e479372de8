from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

MessageHandler = Callable[[Any], Awaitable[None]]


class MessageBusPort(ABC):
    @abstractmethod
    async def publish(self, message: Any) -> None:
        """
        Deliver a message to every subscriber, at most one attempt each.

        Delivery failures (no subscriber, subscriber error) are swallowed.
        """
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, handler: MessageHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        raise NotImplementedError
