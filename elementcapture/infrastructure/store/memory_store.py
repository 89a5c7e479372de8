from __future__ import annotations

from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.domain.entities.capture import CaptureResult


class MemoryResultStore(ResultStorePort):
    def __init__(self) -> None:
        self._last: CaptureResult | None = None

    def get_last(self) -> CaptureResult | None:
        return self._last

    def set_last(self, result: CaptureResult) -> None:
        self._last = result

    def clear(self) -> None:
        self._last = None
