from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from elementcapture.domain.entities.dom import DomNode


class PageEventType(str, Enum):
    pointer_move = "mousemove"
    pointer_down = "mousedown"
    pointer_up = "mouseup"
    click = "click"
    key_down = "keydown"


@dataclass(frozen=True)
class PageEvent:
    type: PageEventType
    target: DomNode | None = None
    key: str | None = None
    button: int = 0  # 0 = primary
