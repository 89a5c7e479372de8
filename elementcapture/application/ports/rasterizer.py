from abc import ABC, abstractmethod


class RasterizerPort(ABC):
    @abstractmethod
    async def rasterize(
        self,
        svg: bytes,
        width: int,
        height: int,
        format: str,
        quality: float,
        background: str | None,
    ) -> bytes:
        """Encode an SVG document as PNG or JPEG bytes. Raises RendererError on failure."""
        raise NotImplementedError
