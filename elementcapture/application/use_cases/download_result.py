from __future__ import annotations

import logging
import time
from pathlib import Path

from elementcapture.application.exceptions import CaptureInputError
from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.application.utils.export import default_filename, sanitize_filename


class DownloadResultUseCase:
    def __init__(self, store: ResultStorePort, download_dir: str) -> None:
        self._store = store
        self._download_dir = Path(download_dir)
        self._logger = logging.getLogger(__name__)

    def execute(self, filename: str | None = None, timestamp_ms: int | None = None) -> Path:
        """Write the last successful capture to the download directory and return its path."""
        result = self._store.get_last()
        content = result.content() if result is not None and result.ok else None
        if result is None or content is None:
            raise CaptureInputError("No captured image to download")

        ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        name = sanitize_filename(filename or "")
        if not name.strip("."):
            name = default_filename(result.format, ts)
        self._download_dir.mkdir(parents=True, exist_ok=True)
        path = self._download_dir / name
        path.write_bytes(content)
        self._logger.info("Capture saved", extra={"request_id": result.request_id, "url": str(path)})
        return path
