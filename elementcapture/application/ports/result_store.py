from abc import ABC, abstractmethod

from elementcapture.domain.entities.capture import CaptureResult


class ResultStorePort(ABC):
    @abstractmethod
    def get_last(self) -> CaptureResult | None:
        raise NotImplementedError

    @abstractmethod
    def set_last(self, result: CaptureResult) -> None:
        """Overwrite the single last-result slot."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError
