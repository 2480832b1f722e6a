"""Pillow based placeholder renderer."""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass
from pathlib import Path

import PIL
from PIL import Image, ImageDraw, ImageFont

from placeholder_service.core.request import ImageFormat, ImageRequest
from placeholder_service.errors import RenderError

logger = logging.getLogger(__name__)

RENDERER_VERSION = "pillow-1"
FOOTER_MIN_WIDTH = 200
FOOTER_MARGIN = 5.0
FOOTER_ALPHA = 0.5


@dataclass(frozen=True)
class RenderedImage:
    data: bytes
    content_type: str


class PillowRenderer:
    def __init__(self, font_path: Path | None = None, footer_text: str = "") -> None:
        self._font_path = font_path
        self._footer_text = footer_text or ""
        fingerprint = "\x00".join(
            [PIL.__version__, str(font_path or ""), self._footer_text]
        ).encode("utf-8")
        self._namespace = f"{RENDERER_VERSION}:{hashlib.sha256(fingerprint).hexdigest()[:16]}"

    @property
    def namespace(self) -> str:
        """Identifies everything outside the request that changes output bytes."""
        return self._namespace

    def render(self, request: ImageRequest) -> RenderedImage:
        try:
            image = self._draw(request)
            data = _encode(image, request.format)
        except (OSError, ValueError, MemoryError) as exc:
            raise RenderError(
                f"Cannot render {request.width}x{request.height} {request.format.value}: {exc}"
            ) from exc
        return RenderedImage(data=data, content_type=request.format.content_type)

    def _font(self, size: float) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        size = max(1, int(round(size)))
        if self._font_path is not None:
            try:
                return ImageFont.truetype(str(self._font_path), size)
            except OSError:
                logger.warning("Cannot load font %s, using Pillow default", self._font_path)
        return ImageFont.load_default(size=size)

    def _draw(self, request: ImageRequest) -> Image.Image:
        width, height = request.width, request.height
        image = Image.new("RGB", (width, height), request.background.as_tuple())
        draw = ImageDraw.Draw(image)

        border = request.effective_border_color
        if border is not None:
            draw.rectangle(
                [0, 0, width - 1, height - 1],
                outline=border.as_tuple(),
                width=request.border_size,
            )

        label = request.effective_label
        foreground = request.effective_foreground
        font_size = min(width / len(label) * 1.2, height * 0.9)
        font = self._font(font_size)
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        x = width / 2.0 - ((right - left) / 2.0 + left)
        y = height / 2.0 - ((bottom - top) / 2.0 + top)
        draw.text((x, y), label, font=font, fill=foreground.as_tuple())

        if self._footer_text and width >= FOOTER_MIN_WIDTH:
            footer_size = max(12.0, min(width / len(self._footer_text), 40.0))
            footer_font = self._font(footer_size)
            left, top, right, bottom = draw.textbbox((0, 0), self._footer_text, font=footer_font)
            inset = request.border_size / 1.5
            fx = width - (right - left) - FOOTER_MARGIN - inset - left
            fy = height - (bottom - top) - FOOTER_MARGIN - inset - top
            color = request.background.blend(foreground, FOOTER_ALPHA)
            draw.text((fx, fy), self._footer_text, font=footer_font, fill=color.as_tuple())
        return image


def _encode(image: Image.Image, fmt: ImageFormat) -> bytes:
    buffer = io.BytesIO()
    if fmt is ImageFormat.JPEG:
        image.save(buffer, format=fmt.pil_format, quality=90)
    else:
        image.save(buffer, format=fmt.pil_format)
    return buffer.getvalue()
