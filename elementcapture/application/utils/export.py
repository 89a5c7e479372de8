from __future__ import annotations

import base64
import re

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


def file_extension(format: str | None) -> str:
    if format == "jpeg":
        return "jpg"
    if format == "svg":
        return "svg"
    return "png"


def mime_type(format: str | None) -> str:
    if format == "jpeg":
        return "image/jpeg"
    if format == "svg":
        return "image/svg+xml"
    return "image/png"


def sanitize_filename(name: str) -> str:
    return _UNSAFE_FILENAME_RE.sub("_", name or "")


def default_filename(format: str | None, timestamp_ms: int) -> str:
    return f"element-{timestamp_ms}.{file_extension(format)}"


def to_data_url(data: bytes, format: str | None) -> str:
    return f"data:{mime_type(format)};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(url: str) -> bytes:
    """Decode a base64 data URL produced by to_data_url."""
    header, _, payload = (url or "").partition(",")
    if not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Expected a base64 data URL")
    return base64.b64decode(payload)
