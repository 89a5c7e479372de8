from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from elementcapture.domain.entities.font import FontDescriptor, FontSource

MAX_HTML_LENGTH = 200_000
MAX_STYLE_ENTRIES = 200
MAX_SELECTOR_LENGTH = 300
MAX_CSS_TEXT_LENGTH = 4000


class MessageType(str, Enum):
    start_selection = "start-selection"
    cancel_selection = "cancel-selection"
    element_selected = "element-selected"
    selection_cancelled = "selection-cancelled"
    render_complete = "render-complete"


class CaptureFormat(str, Enum):
    png = "png"
    jpeg = "jpeg"
    svg = "svg"


@dataclass(frozen=True)
class StyleTraceEntry:
    selector: str
    css_text: str

    @staticmethod
    def bounded(selector: str, css_text: str) -> "StyleTraceEntry":
        return StyleTraceEntry(
            selector=selector[:MAX_SELECTOR_LENGTH],
            css_text=css_text[:MAX_CSS_TEXT_LENGTH],
        )


@dataclass(frozen=True)
class CaptureRequest:
    request_id: str
    html: str
    width: int
    height: int
    background_color: str = "#ffffff"
    fonts: list[FontSource] = field(default_factory=list)
    system_fonts: list[FontDescriptor] = field(default_factory=list)
    styles: list[StyleTraceEntry] = field(default_factory=list)
    format: str = CaptureFormat.png.value
    quality: float = 0.92

    @staticmethod
    def build(
        request_id: str,
        html: str,
        width: float,
        height: float,
        background_color: str | None = None,
        fonts: list[FontSource] | None = None,
        system_fonts: list[FontDescriptor] | None = None,
        styles: list[StyleTraceEntry] | None = None,
        format: str | None = None,
        quality: float | None = None,
        max_html_length: int = MAX_HTML_LENGTH,
    ) -> "CaptureRequest":
        """Apply transport bounds: markup truncated, dimensions rounded with a 1px floor."""
        return CaptureRequest(
            request_id=request_id,
            html=(html or "")[:max_html_length],
            width=clamp_dimension(width),
            height=clamp_dimension(height),
            background_color=background_color or "#ffffff",
            fonts=list(fonts or []),
            system_fonts=list(system_fonts or []),
            styles=list(styles or [])[:MAX_STYLE_ENTRIES],
            format=normalize_format(format),
            quality=max(0.0, min(1.0, 0.92 if quality is None else float(quality))),
        )


@dataclass(frozen=True)
class CaptureResult:
    type: str
    request_id: str
    svg: str | None = None
    image: bytes | None = None
    format: str = CaptureFormat.png.value
    fonts: list[FontDescriptor] = field(default_factory=list)
    system_fonts: list[FontDescriptor] = field(default_factory=list)
    styles: list[StyleTraceEntry] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.type == MessageType.render_complete.value and self.error is None

    @property
    def cancelled(self) -> bool:
        return self.type == MessageType.selection_cancelled.value

    def content(self) -> bytes | None:
        """Bytes of the produced artifact: raster image, or the SVG document."""
        if self.image is not None:
            return self.image
        if self.svg is not None:
            return self.svg.encode("utf-8")
        return None

    @staticmethod
    def rendered(
        request_id: str,
        format: str,
        svg: str | None = None,
        image: bytes | None = None,
        fonts: list[FontDescriptor] | None = None,
        system_fonts: list[FontDescriptor] | None = None,
        styles: list[StyleTraceEntry] | None = None,
    ) -> "CaptureResult":
        return CaptureResult(
            type=MessageType.render_complete.value,
            request_id=request_id,
            svg=svg,
            image=image,
            format=format,
            fonts=list(fonts or []),
            system_fonts=list(system_fonts or []),
            styles=list(styles or []),
        )

    @staticmethod
    def failed(request_id: str, error: str, format: str = CaptureFormat.png.value) -> "CaptureResult":
        return CaptureResult(
            type=MessageType.render_complete.value,
            request_id=request_id,
            format=format,
            error=error or "Unknown error",
        )

    @staticmethod
    def selection_cancelled(request_id: str) -> "CaptureResult":
        return CaptureResult(type=MessageType.selection_cancelled.value, request_id=request_id)


def clamp_dimension(value: float) -> int:
    try:
        return max(1, int(round(float(value))))
    except (TypeError, ValueError, OverflowError):
        return 1


def normalize_format(value: str | None) -> str:
    text = (value or "").strip().lower()
    if text == "jpg":
        return CaptureFormat.jpeg.value
    if text in {f.value for f in CaptureFormat}:
        return text
    return CaptureFormat.png.value
