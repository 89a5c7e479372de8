from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FontDescriptor:
    family: str
    style: str = "normal"  # "normal" | "italic"
    weight: int = 400  # 100..900

    @property
    def key(self) -> tuple[str, str, int]:
        return (self.family.lower(), self.style, self.weight)


@dataclass(frozen=True)
class FontFaceRecord:
    """An `@font-face` rule harvested from a stylesheet, urls ranked by format preference."""

    family: str
    style: str
    weight: int
    urls: tuple[str, ...] = ()


@dataclass(frozen=True)
class FontSource:
    """A collectable font as sent to the renderer: descriptor plus where its bytes live."""

    descriptor: FontDescriptor
    urls: tuple[str, ...] = ()
    data: bytes | None = None

    @property
    def family(self) -> str:
        return self.descriptor.family


@dataclass(frozen=True)
class FontPayload:
    name: str
    data: bytes | None
    weight: int = 400
    style: str = "normal"

    def summary(self) -> FontDescriptor:
        return FontDescriptor(family=self.name, style=self.style, weight=self.weight)
