from __future__ import annotations

import base64
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from elementcapture.application.utils.export import from_data_url, mime_type, to_data_url
from elementcapture.domain.entities.capture import (
    CaptureFormat,
    CaptureRequest,
    CaptureResult,
    MessageType,
    StyleTraceEntry,
)
from elementcapture.domain.entities.font import FontDescriptor, FontSource


class MessageModel(BaseModel):
    """Wire models use camelCase keys (`requestId`, `systemFonts`, `cssText`)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FontDescriptorSchema(MessageModel):
    family: str
    style: Literal["normal", "italic"] = "normal"
    weight: int = Field(default=400, ge=100, le=900)

    def to_domain(self) -> FontDescriptor:
        return FontDescriptor(family=self.family, style=self.style, weight=self.weight)

    @staticmethod
    def from_domain(descriptor: FontDescriptor) -> "FontDescriptorSchema":
        return FontDescriptorSchema(family=descriptor.family, style=descriptor.style, weight=descriptor.weight)


class FontSourceSchema(FontDescriptorSchema):
    urls: list[str] = Field(default_factory=list)
    data: str | None = None  # base64

    def to_source(self) -> FontSource:
        return FontSource(
            descriptor=self.to_domain(),
            urls=tuple(self.urls),
            data=base64.b64decode(self.data) if self.data else None,
        )

    @staticmethod
    def from_source(source: FontSource) -> "FontSourceSchema":
        d = source.descriptor
        return FontSourceSchema(
            family=d.family,
            style=d.style,
            weight=d.weight,
            urls=list(source.urls),
            data=base64.b64encode(source.data).decode("ascii") if source.data else None,
        )


class StyleTraceSchema(MessageModel):
    selector: str
    css_text: str

    def to_domain(self) -> StyleTraceEntry:
        return StyleTraceEntry.bounded(self.selector, self.css_text)


class CapturePayloadSchema(MessageModel):
    html: str
    width: float = 1
    height: float = 1
    background_color: str = "#ffffff"
    fonts: list[FontSourceSchema] = Field(default_factory=list)
    system_fonts: list[FontDescriptorSchema] = Field(default_factory=list)
    styles: list[StyleTraceSchema] = Field(default_factory=list)
    format: str = CaptureFormat.png.value
    quality: float = 0.92


class StartSelectionMessage(MessageModel):
    type: Literal["start-selection"] = MessageType.start_selection.value
    request_id: str
    format: str = CaptureFormat.png.value
    quality: float = 0.92


class CancelSelectionMessage(MessageModel):
    type: Literal["cancel-selection"] = MessageType.cancel_selection.value
    request_id: str


class ElementSelectedMessage(MessageModel):
    type: Literal["element-selected"] = MessageType.element_selected.value
    request_id: str
    payload: CapturePayloadSchema

    def to_request(self, max_html_length: int) -> CaptureRequest:
        p = self.payload
        return CaptureRequest.build(
            request_id=self.request_id,
            html=p.html,
            width=p.width,
            height=p.height,
            background_color=p.background_color,
            fonts=[f.to_source() for f in p.fonts],
            system_fonts=[f.to_domain() for f in p.system_fonts],
            styles=[s.to_domain() for s in p.styles],
            format=p.format,
            quality=p.quality,
            max_html_length=max_html_length,
        )

    @staticmethod
    def from_request(request: CaptureRequest) -> "ElementSelectedMessage":
        return ElementSelectedMessage(
            request_id=request.request_id,
            payload=CapturePayloadSchema(
                html=request.html,
                width=request.width,
                height=request.height,
                background_color=request.background_color,
                fonts=[FontSourceSchema.from_source(f) for f in request.fonts],
                system_fonts=[FontDescriptorSchema.from_domain(f) for f in request.system_fonts],
                styles=[StyleTraceSchema(selector=s.selector, css_text=s.css_text) for s in request.styles],
                format=request.format,
                quality=request.quality,
            ),
        )


class SelectionCancelledMessage(MessageModel):
    type: Literal["selection-cancelled"] = MessageType.selection_cancelled.value
    request_id: str


class RenderCompleteMessage(MessageModel):
    type: Literal["render-complete"] = MessageType.render_complete.value
    request_id: str
    format: str = CaptureFormat.png.value
    mime_type: str | None = None
    svg: str | None = None
    image: str | None = None  # data URL
    fonts: list[FontDescriptorSchema] = Field(default_factory=list)
    system_fonts: list[FontDescriptorSchema] = Field(default_factory=list)
    styles: list[StyleTraceSchema] = Field(default_factory=list)
    error: str | None = None


CaptureMessage = Annotated[
    Union[
        StartSelectionMessage,
        CancelSelectionMessage,
        ElementSelectedMessage,
        SelectionCancelledMessage,
        RenderCompleteMessage,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[Any] = TypeAdapter(CaptureMessage)


def parse_message(payload: dict[str, Any]) -> MessageModel:
    """Validate a wire dict into its message model. Raises pydantic.ValidationError."""
    return _message_adapter.validate_python(payload)


def result_to_message(result: CaptureResult) -> SelectionCancelledMessage | RenderCompleteMessage:
    if result.cancelled:
        return SelectionCancelledMessage(request_id=result.request_id)
    return RenderCompleteMessage(
        request_id=result.request_id,
        format=result.format,
        mime_type=mime_type(result.format) if result.ok else None,
        svg=result.svg,
        image=to_data_url(result.image, result.format) if result.image is not None else None,
        fonts=[FontDescriptorSchema.from_domain(f) for f in result.fonts],
        system_fonts=[FontDescriptorSchema.from_domain(f) for f in result.system_fonts],
        styles=[StyleTraceSchema(selector=s.selector, css_text=s.css_text) for s in result.styles],
        error=result.error,
    )


def message_to_result(message: MessageModel) -> CaptureResult | None:
    if isinstance(message, SelectionCancelledMessage):
        return CaptureResult.selection_cancelled(message.request_id)
    if not isinstance(message, RenderCompleteMessage):
        return None
    if message.error is not None:
        return CaptureResult.failed(message.request_id, message.error, format=message.format)
    return CaptureResult.rendered(
        request_id=message.request_id,
        format=message.format,
        svg=message.svg,
        image=from_data_url(message.image) if message.image else None,
        fonts=[f.to_domain() for f in message.fonts],
        system_fonts=[f.to_domain() for f in message.system_fonts],
        styles=[s.to_domain() for s in message.styles],
    )
