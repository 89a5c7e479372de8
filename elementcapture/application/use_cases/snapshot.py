from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field

from elementcapture.application.utils.css_values import (
    SUPPORTED_PROPERTIES,
    declarations_to_css,
    normalize_declarations,
)
from elementcapture.application.utils.urls import resolve_srcset, resolve_url
from elementcapture.domain.entities.capture import MAX_STYLE_ENTRIES, StyleTraceEntry
from elementcapture.domain.entities.dom import TEXT_NODE, DomNode

MAX_SELECTOR_DEPTH = 10

EXCLUDED_TAGS = frozenset({"script", "noscript"})
VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)
_ATTRIBUTE_NAME_RE = re.compile(r"^[A-Za-z_][-A-Za-z0-9_.]*$")


@dataclass(frozen=True)
class SerializedSnapshot:
    html: str
    styles: list[StyleTraceEntry]
    pending_images: list[str] = field(default_factory=list)  # img srcs that had not finished loading


class DomSnapshotSerializer:
    """
    Turn a live subtree into self-contained markup.

    The target is deep-cloned; source and clone are walked in lockstep so the
    n-th source element's computed style lands on the n-th cloned element.
    """

    def __init__(
        self,
        properties: tuple[str, ...] = SUPPORTED_PROPERTIES,
        max_style_entries: int = MAX_STYLE_ENTRIES,
    ) -> None:
        self._properties = properties
        self._max_style_entries = max_style_entries
        self._logger = logging.getLogger(__name__)

    def serialize(self, target: DomNode, base_url: str | None) -> SerializedSnapshot:
        clone = target.clone()
        styles: list[StyleTraceEntry] = []

        for source, copy in zip(target.iter_elements(), clone.iter_elements()):
            try:
                declarations = normalize_declarations(source.computed_style, base_url, self._properties)
            except Exception as e:
                self._logger.warning(
                    "Style normalization failed", extra={"reason": source.tag, "error": str(e)}
                )
                copy.attributes.pop("style", None)
                continue
            if not declarations:
                copy.attributes.pop("style", None)
                continue
            css_text = declarations_to_css(declarations)
            copy.attributes["style"] = css_text
            if len(styles) < self._max_style_entries:
                styles.append(StyleTraceEntry.bounded(build_selector(source, target), css_text))

        _strip_excluded(clone)
        _absolutize_media(clone, base_url)
        pending = [
            element.attributes.get("src", "")
            for element in clone.iter_elements()
            if element.tag == "img" and not element.image_complete
        ]
        if pending:
            self._logger.warning(
                "Images still loading at capture", extra={"url": pending[0], "reason": f"pending={len(pending)}"}
            )
        return SerializedSnapshot(html=serialize_markup(clone), styles=styles, pending_images=pending)


def build_selector(node: DomNode, root: DomNode, max_depth: int = MAX_SELECTOR_DEPTH) -> str:
    """Human-readable path from the capture target down to `node`."""
    segments: list[str] = []
    current: DomNode | None = node
    while current is not None and len(segments) < max_depth:
        segments.append(_selector_segment(current))
        if current is root:
            break
        current = current.parent
    return " > ".join(reversed(segments))


def _selector_segment(node: DomNode) -> str:
    segment = node.tag
    if node.id:
        segment += f"#{node.id}"
    elif node.classes:
        segment += "".join(f".{c}" for c in node.classes[:2])
    return f"{segment}:nth-child({node.sibling_index()})"


def _strip_excluded(node: DomNode) -> None:
    node.children = [c for c in node.children if c.tag not in EXCLUDED_TAGS]
    for child in node.children:
        _strip_excluded(child)


def _absolutize_media(root: DomNode, base_url: str | None) -> None:
    for element in root.iter_elements():
        if element.tag not in {"img", "source"}:
            continue
        if element.attributes.get("src"):
            element.attributes["src"] = resolve_url(element.attributes["src"], base_url)
        if element.attributes.get("srcset"):
            element.attributes["srcset"] = resolve_srcset(element.attributes["srcset"], base_url)


def serialize_markup(node: DomNode) -> str:
    """XHTML-compatible markup: void elements self-close, unsafe attributes dropped."""
    if node.tag == TEXT_NODE:
        return html.escape(node.text, quote=False)
    if not node.is_element or node.tag in EXCLUDED_TAGS:
        return ""
    attrs = "".join(
        f' {name}="{html.escape(value, quote=True)}"'
        for name, value in node.attributes.items()
        if _ATTRIBUTE_NAME_RE.match(name) and not name.lower().startswith("on")
    )
    if node.tag in VOID_TAGS:
        return f"<{node.tag}{attrs} />"
    inner = "".join(serialize_markup(child) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"
