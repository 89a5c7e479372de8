from __future__ import annotations

import re

from elementcapture.application.utils.color import convert_oklab_colors
from elementcapture.application.utils.urls import resolve_css_urls

SUPPORTED_PROPERTIES = (
    "align-items",
    "align-content",
    "background",
    "background-color",
    "background-image",
    "background-position",
    "background-repeat",
    "background-size",
    "border",
    "border-color",
    "border-radius",
    "border-style",
    "border-width",
    "border-top",
    "border-right",
    "border-bottom",
    "border-left",
    "box-shadow",
    "color",
    "column-gap",
    "display",
    "flex",
    "flex-basis",
    "flex-direction",
    "flex-grow",
    "flex-shrink",
    "font-family",
    "font-size",
    "font-style",
    "font-weight",
    "gap",
    "height",
    "justify-content",
    "letter-spacing",
    "line-height",
    "margin",
    "margin-top",
    "margin-right",
    "margin-bottom",
    "margin-left",
    "max-height",
    "max-width",
    "min-height",
    "min-width",
    "opacity",
    "overflow",
    "overflow-x",
    "overflow-y",
    "padding",
    "padding-top",
    "padding-right",
    "padding-bottom",
    "padding-left",
    "position",
    "row-gap",
    "text-align",
    "text-decoration",
    "text-transform",
    "top",
    "right",
    "bottom",
    "left",
    "transform",
    "white-space",
    "width",
)

_SUPPORTED = frozenset(SUPPORTED_PROPERTIES)

JUSTIFY_CONTENT_MAP = {
    "flex-start": "flex-start",
    "start": "flex-start",
    "left": "flex-start",
    "flex-end": "flex-end",
    "end": "flex-end",
    "right": "flex-end",
    "center": "center",
    "space-between": "space-between",
    "space-around": "space-around",
    "space-evenly": "space-around",
}

POSITION_MAP = {
    "static": "static",
    "relative": "relative",
    "absolute": "absolute",
    "fixed": "absolute",
    "sticky": "absolute",
}

OVERFLOW_PROPERTIES = frozenset({"overflow", "overflow-x", "overflow-y"})
OVERFLOW_HIDDEN_VALUES = frozenset({"hidden", "clip", "auto", "scroll"})

NONE_STRIPPED_PROPERTIES = frozenset(
    {"background", "box-shadow", "text-decoration", "filter", "border-image", "outline"}
)

BORDER_PROPERTIES = frozenset(
    {
        "border",
        "border-top",
        "border-right",
        "border-bottom",
        "border-left",
        "border-width",
        "border-style",
    }
)

LENGTH_ENFORCED_PROPERTIES = frozenset(
    {"max-height", "max-width", "min-height", "min-width", "top", "right", "bottom", "left"}
)

_PIXEL_RE = re.compile(r"^(-?(?:\d+\.?\d*|\.\d+))(?:px)?$")
_LENGTH_TOKEN_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:px|em|rem|pt|%)?$")
_UNSAFE_TRANSFORM_RE = re.compile(
    r"%|calc\(|var\(|matrix3d\(|matrix\(|perspective\(|translate3d\(|translatez\(|"
    r"rotate3d\(|rotatex\(|rotatey\(|rotatez\(|scale3d\(|scalez\("
)


def normalize_css_value(property_name: str, raw_value: str | None, base_url: str | None = None) -> str:
    """
    Map one computed-style value to a value the layout engine accepts.

    Returns "" when the declaration should be omitted. Only properties of
    SUPPORTED_PROPERTIES are ever emitted.
    """
    prop = (property_name or "").strip().lower()
    if prop not in _SUPPORTED:
        return ""
    value = (raw_value or "").strip()
    if not value:
        return ""
    keyword = value.lower()

    if prop == "justify-content":
        return JUSTIFY_CONTENT_MAP.get(keyword, "flex-start")
    if prop == "position":
        return POSITION_MAP.get(keyword, "")
    if prop in OVERFLOW_PROPERTIES:
        return "hidden" if keyword in OVERFLOW_HIDDEN_VALUES else "visible"
    if prop == "display":
        if "flex" in keyword:
            return "flex"
        if keyword == "none":
            return "none"
        return "flex"
    if prop in NONE_STRIPPED_PROPERTIES and _first_token(keyword) == "none":
        return ""
    if prop in BORDER_PROPERTIES and _is_empty_border(keyword):
        return ""
    if prop in LENGTH_ENFORCED_PROPERTIES:
        return _as_pixels(keyword)
    if prop == "transform" and (keyword == "none" or _UNSAFE_TRANSFORM_RE.search(keyword)):
        return ""

    if "oklch(" in keyword or "oklab(" in keyword:
        value = convert_oklab_colors(value)
    if "url(" in keyword:
        value = resolve_css_urls(value, base_url)
    return value


def normalize_declarations(
    computed_style: dict[str, str],
    base_url: str | None = None,
    properties: tuple[str, ...] = SUPPORTED_PROPERTIES,
) -> list[tuple[str, str]]:
    declarations: list[tuple[str, str]] = []
    for prop in properties:
        value = normalize_css_value(prop, computed_style.get(prop), base_url)
        if value:
            declarations.append((prop, value))
    return declarations


def declarations_to_css(declarations: list[tuple[str, str]]) -> str:
    return "".join(f"{prop}:{value};" for prop, value in declarations)


def split_top_level(value: str, separators: str = " ") -> list[str]:
    """Split on separators that are not inside parentheses or quotes."""
    tokens: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in value:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif depth == 0 and (char in separators or (separators == " " and char.isspace())):
            token = "".join(current).strip()
            if token:
                tokens.append(token)
            current = []
            continue
        current.append(char)
    token = "".join(current).strip()
    if token:
        tokens.append(token)
    return tokens


def _first_token(value: str) -> str:
    tokens = split_top_level(value)
    return tokens[0] if tokens else ""


def _is_empty_border(value: str) -> bool:
    tokens = split_top_level(value)
    if not tokens or "none" in tokens:
        return True
    widths = [t for t in tokens if _LENGTH_TOKEN_RE.match(t)]
    if not widths:
        return False
    return all(float(re.sub(r"[a-z%]+$", "", w)) == 0 for w in widths)


def _as_pixels(value: str) -> str:
    match = _PIXEL_RE.match(value)
    if not match:
        return ""
    return f"{match.group(1)}px"
