from abc import ABC, abstractmethod

from elementcapture.domain.entities.page import FontFace


class FontLoaderPort(ABC):
    @abstractmethod
    async def load(self, face: FontFace) -> FontFace:
        """Trigger loading of a document font face and return its updated state."""
        raise NotImplementedError
