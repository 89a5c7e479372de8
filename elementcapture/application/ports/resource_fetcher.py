from abc import ABC, abstractmethod


class ResourceFetcherPort(ABC):
    @abstractmethod
    async def fetch_text(self, url: str) -> str:
        """Fetch a text resource (stylesheet). Raises ResourceFetchError on any failure."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_bytes(self, url: str) -> bytes:
        """Fetch a binary resource (font). Raises ResourceFetchError on any failure."""
        raise NotImplementedError
