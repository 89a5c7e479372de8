from abc import ABC, abstractmethod

from elementcapture.domain.entities.events import PageEventType


class PageEventSourcePort(ABC):
    @abstractmethod
    async def attach(self, suppressed: frozenset[PageEventType]) -> None:
        """
        Start listening to the page in the capture phase.

        Events whose type is in `suppressed` must be stopped synchronously in
        the page; all events are forwarded to the selection session.
        """
        raise NotImplementedError

    @abstractmethod
    async def detach(self) -> None:
        """Remove every listener. Safe to call when nothing is attached."""
        raise NotImplementedError
