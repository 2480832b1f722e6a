from __future__ import annotations

import re
from dataclasses import dataclass

from placeholder_service.errors import ValidationError


_HEX_RE = re.compile(r"^#?(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

LIGHT_THRESHOLD = 80.0
DARK_TEXT = "111827"
LIGHT_TEXT = "F9FAFB"


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int

    @classmethod
    def from_hex(cls, value: str) -> Color:
        """Parse ``rgb`` / ``rrggbb`` hex, with or without a leading ``#``."""
        text = (value or "").strip()
        if not _HEX_RE.match(text):
            raise ValidationError(f"Invalid color: {value!r}, expected 3 or 6 hex digits")
        text = text.lstrip("#").lower()
        if len(text) == 3:
            text = "".join(ch * 2 for ch in text)
        return cls(int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))

    @property
    def hex(self) -> str:
        return f"{self.r:02x}{self.g:02x}{self.b:02x}"

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def perceived_lightness(self) -> float:
        """CIE L* of the color, 0 (black) .. 100 (white)."""
        r = _srgb_to_linear(self.r / 255.0)
        g = _srgb_to_linear(self.g / 255.0)
        b = _srgb_to_linear(self.b / 255.0)
        luminance = 0.2126 * r + 0.7152 * g + 0.0722 * b
        if luminance <= 216.0 / 24389.0:
            return luminance * (24389.0 / 27.0)
        return luminance ** (1.0 / 3.0) * 116.0 - 16.0

    def is_light(self) -> bool:
        return self.perceived_lightness() >= LIGHT_THRESHOLD

    def contrast_text_color(self) -> Color:
        return Color.from_hex(DARK_TEXT if self.is_light() else LIGHT_TEXT)

    def blend(self, other: Color, alpha: float) -> Color:
        """Mix ``other`` over this color with opacity ``alpha``."""
        alpha = max(0.0, min(alpha, 1.0))
        return Color(
            int(round(self.r * (1 - alpha) + other.r * alpha)),
            int(round(self.g * (1 - alpha) + other.g * alpha)),
            int(round(self.b * (1 - alpha) + other.b * alpha)),
        )


BLACK = Color(0, 0, 0)


def _srgb_to_linear(channel: float) -> float:
    if channel <= 0.04045:
        return channel / 12.92
    return ((channel + 0.055) / 1.055) ** 2.4
