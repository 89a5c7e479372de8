from abc import ABC, abstractmethod

from elementcapture.domain.entities.font import FontPayload


class LayoutEnginePort(ABC):
    @abstractmethod
    async def initialize(self, wasm_bytes: bytes | None) -> None:
        """
        One-time engine setup.

        Requirements:
        - Must be idempotent: a second call is a no-op
        - Raises LayoutEngineInitError when the engine cannot start
        """
        raise NotImplementedError

    @abstractmethod
    async def render(
        self,
        markup: str,
        fonts: list[FontPayload],
        width: int,
        height: int,
        background: str,
    ) -> bytes:
        """
        Lay out the markup at the given pixel size and return an SVG document.

        Raises:
            RendererError: markup cannot be parsed or laid out
        """
        raise NotImplementedError
