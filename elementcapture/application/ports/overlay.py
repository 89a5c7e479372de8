from abc import ABC, abstractmethod

from elementcapture.domain.entities.dom import Rect


class OverlayPort(ABC):
    @abstractmethod
    async def show(self, rect: Rect, label: str) -> None:
        """Draw (or move) the highlight box and its tag label."""
        raise NotImplementedError

    @abstractmethod
    async def remove(self) -> None:
        """Remove every overlay node. Safe to call when nothing is shown."""
        raise NotImplementedError
