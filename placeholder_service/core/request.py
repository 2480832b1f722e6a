"""Parsing and validation of raw request parameters into ``ImageRequest``."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from placeholder_service.core.color import BLACK, Color
from placeholder_service.errors import ValidationError


_DIMENSIONS_RE = re.compile(r"^([1-9][0-9]*)x([1-9][0-9]*)$")


class ImageFormat(enum.Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    GIF = "gif"

    @property
    def content_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @classmethod
    def parse(cls, value: str | None) -> ImageFormat:
        if value is None:
            return cls.PNG
        name = value.strip().lower()
        if name == "jpg":
            name = "jpeg"
        for fmt in cls:
            if fmt.value == name:
                return fmt
        allowed = ", ".join(fmt.value for fmt in cls)
        raise ValidationError(f"Invalid format: {value!r}, must be one of {allowed}")


@dataclass(frozen=True)
class ImageRequest:
    width: int
    height: int
    background: Color
    foreground: Color | None = None
    border_color: Color | None = None
    border_size: int = 0
    label: str | None = None
    format: ImageFormat = ImageFormat.PNG

    @property
    def effective_label(self) -> str:
        return self.label if self.label else f"{self.width}x{self.height}"

    @property
    def effective_foreground(self) -> Color:
        if self.foreground is not None:
            return self.foreground
        return self.background.contrast_text_color()

    @property
    def effective_border_color(self) -> Color | None:
        if self.border_size <= 0:
            return None
        return self.border_color or BLACK


def parse_dimensions(value: str, max_dimension: int) -> tuple[int, int]:
    match = _DIMENSIONS_RE.match((value or "").strip())
    if match is None:
        raise ValidationError("Invalid dimensions, expected <width>x<height>")
    width, height = int(match.group(1)), int(match.group(2))
    if width > max_dimension or height > max_dimension:
        raise ValidationError(f"max dimension is {max_dimension}x{max_dimension}")
    return width, height


def _optional_color(value: str | None) -> Color | None:
    if value is None or not value.strip():
        return None
    return Color.from_hex(value)


def parse_image_request(
    dimensions: str,
    *,
    bg: str | None = None,
    fg: str | None = None,
    br: str | None = None,
    br_s: int | None = None,
    text: str | None = None,
    fmt: str | None = None,
    max_dimension: int = 3000,
    max_border: int = 255,
    max_label: int = 64,
    default_background: str = "FFD8C2",
) -> ImageRequest:
    """Build an ``ImageRequest`` from raw query values, raising ``ValidationError``."""
    width, height = parse_dimensions(dimensions, max_dimension)
    background = _optional_color(bg) or Color.from_hex(default_background)
    border_size = 0 if br_s is None else int(br_s)
    if border_size < 0 or border_size > max_border:
        raise ValidationError(f"Invalid border size: {br_s}, must be 0..{max_border}")
    label = text.strip() if text is not None else None
    if label is not None and len(label) > max_label:
        raise ValidationError(f"Label too long, max {max_label} characters")
    return ImageRequest(
        width=width,
        height=height,
        background=background,
        foreground=_optional_color(fg),
        border_color=_optional_color(br),
        border_size=border_size,
        label=label or None,
        format=ImageFormat.parse(fmt),
    )
