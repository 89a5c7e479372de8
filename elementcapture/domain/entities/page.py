from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

from elementcapture.domain.entities.dom import DomNode


@dataclass(frozen=True)
class StyleSheet:
    href: str | None = None
    css_text: str | None = None  # None when the sheet is cross-origin and its rules are unreadable

    @property
    def accessible(self) -> bool:
        return self.css_text is not None


@dataclass(frozen=True)
class FontFace:
    """A live font-face object of the document (FontFaceSet entry)."""

    family: str
    style: str = "normal"
    weight: int = 400
    status: str = "unloaded"  # "unloaded", "loading", "loaded", "error"
    data: bytes | None = None

    @property
    def loaded(self) -> bool:
        return self.status == "loaded"


@dataclass
class PageSnapshot:
    url: str
    root: DomNode
    stylesheets: list[StyleSheet] = field(default_factory=list)
    font_faces: list[FontFace] = field(default_factory=list)
    body_background: str = "#ffffff"
    base_href: str | None = None

    @property
    def base_url(self) -> str:
        return self.base_href or self.url

    @staticmethod
    def from_payload(payload: dict[str, Any]) -> "PageSnapshot":
        sheets = [
            StyleSheet(href=s.get("href") or None, css_text=s.get("cssText"))
            for s in payload.get("stylesheets") or []
            if isinstance(s, dict)
        ]
        faces: list[FontFace] = []
        for f in payload.get("fontFaces") or []:
            if not isinstance(f, dict) or not f.get("family"):
                continue
            data = f.get("data")
            faces.append(
                FontFace(
                    family=str(f["family"]).strip().strip("\"'"),
                    style="italic" if str(f.get("style") or "").startswith(("italic", "oblique")) else "normal",
                    weight=_face_weight(f.get("weight")),
                    status=str(f.get("status") or "unloaded"),
                    data=base64.b64decode(data) if data else None,
                )
            )
        return PageSnapshot(
            url=str(payload.get("url") or ""),
            root=DomNode.from_payload(payload.get("root") or {"tag": "div"}),
            stylesheets=sheets,
            font_faces=faces,
            body_background=str(payload.get("bodyBackground") or "#ffffff"),
            base_href=payload.get("baseURI") or None,
        )


def _face_weight(raw: Any) -> int:
    text = str(raw or "400").strip().lower()
    if text == "bold":
        return 700
    try:
        # Variable faces report a range ("100 900"); the lower bound is the nominal weight.
        return max(100, min(900, int(round(float(text.split()[0])))))
    except (ValueError, IndexError):
        return 400
