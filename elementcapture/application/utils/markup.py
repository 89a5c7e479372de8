from __future__ import annotations

import re

_TAG_RE = re.compile(r"<(/?)([A-Za-z][\w:.-]*)[^<>]*?(/?)>")
_PARTIAL_ENTITY_RE = re.compile(r"&#?\w*$")


def open_elements(markup: str) -> list[str]:
    """Tags left open at the end of `markup`, outermost first."""
    stack: list[str] = []
    for match in _TAG_RE.finditer(markup):
        closing, tag, self_closing = match.groups()
        if self_closing:
            continue
        if not closing:
            stack.append(tag)
        elif tag in stack:
            while stack.pop() != tag:
                pass
    return stack


def truncate_markup(markup: str, limit: int) -> str:
    """
    Cut serialized XHTML to at most `limit` characters and keep it well-formed.

    A trailing partial tag or entity is dropped and every element still open
    at the cut is closed again. When the closing tags do not fit, trailing
    text is trimmed, or the last tag dropped, until they do.
    """
    if len(markup) <= limit:
        return markup

    cut = markup[: max(0, limit)]
    while True:
        if cut.rfind("<") > cut.rfind(">"):
            cut = cut[: cut.rfind("<")]
        cut = _PARTIAL_ENTITY_RE.sub("", cut)
        closers = "".join(f"</{tag}>" for tag in reversed(open_elements(cut)))
        overflow = len(cut) + len(closers) - limit
        if overflow <= 0 or not cut:
            return cut + closers
        if overflow < len(cut) and "<" not in cut[-overflow:]:
            cut = cut[:-overflow]
        elif "<" in cut:
            cut = cut[: cut.rfind("<")]
        else:
            cut = ""
