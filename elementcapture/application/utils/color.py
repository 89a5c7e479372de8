from __future__ import annotations

import math
import re

OKLAB_FUNCTION_RE = re.compile(r"\b(oklch|oklab)\(\s*([^()]*)\)", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?)([a-z%]*)$", re.IGNORECASE)

# CSS Color 4 reference ranges for percentage components.
_CHROMA_PERCENT_SCALE = 0.4
_AB_PERCENT_SCALE = 0.4


def convert_oklab_colors(value: str) -> str:
    """Rewrite every oklch()/oklab() expression in a CSS value to rgb()/rgba()."""
    return OKLAB_FUNCTION_RE.sub(_replace_match, value)


def oklch_to_rgb_string(components: str) -> str:
    return _to_rgb_string("oklch", components)


def oklab_to_rgb_string(components: str) -> str:
    return _to_rgb_string("oklab", components)


def oklab_to_srgb(lightness: float, a: float, b: float) -> tuple[int, int, int]:
    l_ = lightness + 0.3963377774 * a + 0.2158037573 * b
    m_ = lightness - 0.1055613458 * a - 0.0638541728 * b
    s_ = lightness - 0.0894841775 * a - 1.2914855480 * b

    l = l_ ** 3
    m = m_ ** 3
    s = s_ ** 3

    r = 4.0767416621 * l - 3.3077115913 * m + 0.2309699292 * s
    g = -1.2684380046 * l + 2.6097574011 * m - 0.3413193965 * s
    bl = -0.0041960863 * l - 0.7034186147 * m + 1.7076147010 * s

    return (_encode_channel(r), _encode_channel(g), _encode_channel(bl))


def oklch_to_oklab(lightness: float, chroma: float, hue_degrees: float) -> tuple[float, float, float]:
    radians = math.radians(hue_degrees)
    return (lightness, chroma * math.cos(radians), chroma * math.sin(radians))


def format_rgb(rgb: tuple[int, int, int], alpha: float = 1.0) -> str:
    r, g, b = rgb
    alpha = max(0.0, min(1.0, alpha))
    if alpha >= 0.999:
        return f"rgb({r}, {g}, {b})"
    return f"rgba({r}, {g}, {b}, {alpha:.3f})"


def _replace_match(match: re.Match[str]) -> str:
    return _to_rgb_string(match.group(1).lower(), match.group(2))


def _to_rgb_string(space: str, components: str) -> str:
    channels, alpha = _split_components(components)
    if len(channels) < 3:
        return format_rgb((0, 0, 0))

    lightness = _parse_component(channels[0], percent_scale=1.0)
    if space == "oklch":
        chroma = _parse_component(channels[1], percent_scale=_CHROMA_PERCENT_SCALE)
        hue = _parse_hue(channels[2])
        lab = oklch_to_oklab(lightness, chroma, hue)
    else:
        lab = (
            lightness,
            _parse_component(channels[1], percent_scale=_AB_PERCENT_SCALE),
            _parse_component(channels[2], percent_scale=_AB_PERCENT_SCALE),
        )

    alpha_value = 1.0 if alpha is None else _parse_component(alpha, percent_scale=1.0, default=1.0)
    try:
        rgb = oklab_to_srgb(*lab)
    except OverflowError:
        # Components too large to cube are as invalid as malformed ones.
        rgb = (0, 0, 0)
    return format_rgb(rgb, alpha_value)


def _split_components(components: str) -> tuple[list[str], str | None]:
    """Accept both `L C H / A` and legacy comma-separated `L, C, H, A` syntax."""
    text = components.strip()
    alpha: str | None = None
    if "/" in text:
        text, alpha = text.split("/", 1)
        alpha = alpha.strip() or None
    parts = [p for p in re.split(r"[\s,]+", text.strip()) if p]
    if alpha is None and len(parts) >= 4:
        alpha = parts[3]
    return parts[:3], alpha


def _parse_component(raw: str, percent_scale: float, default: float = 0.0) -> float:
    match = _NUMBER_RE.match(raw.strip())
    if not match:
        return default
    number = float(match.group(1))
    if not math.isfinite(number):
        return default
    if match.group(2) == "%":
        return number / 100.0 * percent_scale
    return number


def _parse_hue(raw: str) -> float:
    match = _NUMBER_RE.match(raw.strip())
    if not match:
        return 0.0
    number = float(match.group(1))
    if not math.isfinite(number):
        return 0.0
    unit = match.group(2).lower()
    if unit == "rad":
        return math.degrees(number)
    if unit == "turn":
        return number * 360.0
    if unit == "grad":
        return number * 0.9
    if unit in {"", "deg"}:
        return number
    return 0.0


def _encode_channel(linear: float) -> int:
    if linear <= 0.0031308:
        encoded = 12.92 * linear
    else:
        encoded = 1.055 * linear ** (1 / 2.4) - 0.055
    return int(round(max(0.0, min(255.0, encoded * 255.0))))
