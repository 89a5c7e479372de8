"""
Tests for computed-style normalization.
"""

from __future__ import annotations

from elementcapture.application.utils.css_values import (
    SUPPORTED_PROPERTIES,
    declarations_to_css,
    normalize_css_value,
    normalize_declarations,
)

BASE = "https://example.com/app/page.html"


def test_keyword_maps():
    assert normalize_css_value("justify-content", "space-evenly") == "space-around"
    assert normalize_css_value("justify-content", "normal") == "flex-start"
    assert normalize_css_value("justify-content", "right") == "flex-end"
    assert normalize_css_value("position", "sticky") == "absolute"
    assert normalize_css_value("position", "fixed") == "absolute"
    assert normalize_css_value("position", "inherit") == ""
    assert normalize_css_value("overflow", "auto") == "hidden"
    assert normalize_css_value("overflow-x", "visible") == "visible"


def test_display_collapses_to_flex():
    """Everything except none lays out as flex."""
    assert normalize_css_value("display", "inline-flex") == "flex"
    assert normalize_css_value("display", "block") == "flex"
    assert normalize_css_value("display", "grid") == "flex"
    assert normalize_css_value("display", "none") == "none"


def test_none_and_empty_borders_are_dropped():
    assert normalize_css_value("box-shadow", "none") == ""
    assert normalize_css_value("text-decoration", "none solid rgb(0, 0, 0)") == ""
    assert normalize_css_value("border", "0px none rgb(0, 0, 0)") == ""
    assert normalize_css_value("border-top", "0px solid rgb(0, 0, 0)") == ""
    assert normalize_css_value("border", "1px solid rgb(0, 0, 0)") == "1px solid rgb(0, 0, 0)"


def test_lengths_are_forced_to_pixels():
    assert normalize_css_value("top", "12.5px") == "12.5px"
    assert normalize_css_value("left", "10") == "10px"
    assert normalize_css_value("max-width", "none") == ""
    assert normalize_css_value("bottom", "auto") == ""


def test_unsupported_transforms_are_dropped():
    assert normalize_css_value("transform", "none") == ""
    assert normalize_css_value("transform", "matrix(1, 0, 0, 1, 0, 0)") == ""
    assert normalize_css_value("transform", "translate(50%, 0)") == ""
    assert normalize_css_value("transform", "rotate(45deg)") == "rotate(45deg)"


def test_colors_and_urls_are_rewritten():
    assert normalize_css_value("color", "oklch(1 0 0)") == "rgb(255, 255, 255)"
    assert (
        normalize_css_value("background-image", 'url("img/bg.png")', BASE)
        == 'url("https://example.com/app/img/bg.png")'
    )
    assert normalize_css_value("background-image", "url(data:image/png;base64,AAAA)", BASE) == (
        'url("data:image/png;base64,AAAA")'
    )


def test_unsupported_and_empty_values_are_omitted():
    assert normalize_css_value("will-change", "transform") == ""
    assert normalize_css_value("color", "") == ""
    assert normalize_css_value("color", None) == ""


def test_normalization_is_idempotent():
    """Normalizing an already normalized value changes nothing."""
    samples = [
        "none",
        "auto",
        "0px",
        "12px",
        "50%",
        "flex",
        "inline-block",
        "sticky",
        "scroll",
        "space-evenly",
        "1px solid oklch(0.5 0.1 30)",
        "0px none rgb(0, 0, 0)",
        "rotate(10deg)",
        "scale(1.5)",
        'url("img/a.png") no-repeat',
        "oklab(0.4 0.1 -0.1 / 0.4)",
        "bold",
        "italic",
    ]
    for prop in SUPPORTED_PROPERTIES:
        for raw in samples:
            once = normalize_css_value(prop, raw, BASE)
            assert normalize_css_value(prop, once, BASE) == once, (prop, raw, once)


def test_declarations_follow_property_order():
    style = {"width": "10px", "color": "oklch(0 0 0)", "cursor": "pointer", "display": "block"}
    css = declarations_to_css(normalize_declarations(style))
    assert css == "color:rgb(0, 0, 0);display:flex;width:10px;"
