from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from elementcapture.application.dto.messages import message_to_result, parse_message, result_to_message
from elementcapture.application.ports.result_store import ResultStorePort
from elementcapture.domain.entities.capture import CaptureResult


class JsonResultStore(ResultStorePort):
    """Single-slot last-result store persisted as one JSON file."""

    def __init__(self, path: str = "./data/last_result.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def get_last(self) -> CaptureResult | None:
        with self._lock:
            data = self._load()
        if not data:
            return None
        try:
            return message_to_result(parse_message(data))
        except (ValidationError, ValueError) as e:
            self._logger.warning("Stored result is invalid", extra={"error": str(e)})
            return None

    def set_last(self, result: CaptureResult) -> None:
        with self._lock:
            self._save(result_to_message(result).to_wire())

    def clear(self) -> None:
        with self._lock:
            if self._path.exists():
                self._path.unlink()

    def _load(self) -> dict[str, Any] | None:
        """Load the slot; a missing or corrupted file reads as empty."""
        if not self._path.exists():
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError):
            return None
        return data if isinstance(data, dict) else None

    def _save(self, data: dict[str, Any]) -> None:
        """Save the slot atomically."""
        temp_path = self._path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
        except Exception:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise
