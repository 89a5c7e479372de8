from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

TEXT_NODE = "#text"


@dataclass(frozen=True)
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @staticmethod
    def from_payload(payload: dict[str, Any] | None) -> "Rect":
        data = payload or {}
        return Rect(
            x=_as_float(data.get("x", data.get("left"))),
            y=_as_float(data.get("y", data.get("top"))),
            width=_as_float(data.get("width")),
            height=_as_float(data.get("height")),
        )


@dataclass(eq=False)
class DomNode:
    """
    One node of a snapshotted document.

    Element nodes carry their attributes, the browser-computed style map and
    their bounding box. Text and comment nodes carry only `text`.
    """

    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    children: list["DomNode"] = field(default_factory=list)
    computed_style: dict[str, str] = field(default_factory=dict)
    rect: Rect = Rect()
    text: str = ""
    image_complete: bool = True
    parent: "DomNode | None" = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.tag = self.tag.lower() if not self.tag.startswith("#") else self.tag
        for child in self.children:
            child.parent = self

    @property
    def is_element(self) -> bool:
        return not self.tag.startswith("#")

    @property
    def id(self) -> str:
        return (self.attributes.get("id") or "").strip()

    @property
    def classes(self) -> list[str]:
        return [c for c in (self.attributes.get("class") or "").split() if c]

    @property
    def element_children(self) -> list["DomNode"]:
        return [c for c in self.children if c.is_element]

    def append(self, child: "DomNode") -> None:
        child.parent = self
        self.children.append(child)

    def iter_elements(self) -> Iterator["DomNode"]:
        """Yield this node and every descendant element in document order."""
        if self.is_element:
            yield self
        for child in self.children:
            yield from child.iter_elements()

    def sibling_index(self) -> int:
        """1-based position among the parent's element children (nth-child)."""
        if self.parent is None:
            return 1
        for index, sibling in enumerate(self.parent.element_children, start=1):
            if sibling is self:
                return index
        return 1

    def style(self, name: str) -> str:
        return (self.computed_style.get(name) or "").strip()

    def clone(self) -> "DomNode":
        """Deep copy of the subtree; the clone has no parent."""
        return DomNode(
            tag=self.tag,
            attributes=dict(self.attributes),
            children=[child.clone() for child in self.children],
            computed_style=dict(self.computed_style),
            rect=self.rect,
            text=self.text,
            image_complete=self.image_complete,
        )

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "DomNode":
        tag = str(payload.get("tag") or payload.get("tagName") or TEXT_NODE)
        if tag.startswith("#"):
            return DomNode(tag=tag, text=str(payload.get("text") or ""))
        attributes = {
            str(k): "" if v is None else str(v) for k, v in (payload.get("attributes") or {}).items()
        }
        style = {str(k): str(v) for k, v in (payload.get("style") or payload.get("computedStyle") or {}).items()}
        return DomNode(
            tag=tag,
            attributes=attributes,
            children=[DomNode.from_payload(c) for c in payload.get("children") or [] if isinstance(c, dict)],
            computed_style=style,
            rect=Rect.from_payload(payload.get("rect")),
            image_complete=bool(payload.get("complete", True)),
        )


def text_node(text: str) -> DomNode:
    return DomNode(tag=TEXT_NODE, text=text)


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
