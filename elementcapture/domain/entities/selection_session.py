from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from elementcapture.domain.entities.dom import DomNode


class SelectionStatus(str, Enum):
    idle = "idle"
    armed = "armed"
    completed = "completed"
    cancelled = "cancelled"


@dataclass
class SelectionSession:
    request_id: str
    generation: int
    format: str = "png"
    quality: float = 0.92
    active: bool = True
    current_target: DomNode | None = None
