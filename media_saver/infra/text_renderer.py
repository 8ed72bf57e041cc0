# media_saver/infra/text_renderer.py
"""Render overlay text into standalone transparent PNG buffers."""
from __future__ import annotations

import io
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from media_saver.core.domain import OverlaySpec
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=16)
def _load_font(font_path: str | None, size: int):
    if font_path:
        return ImageFont.truetype(font_path, size=size)
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has a single fixed-size bitmap font
        return ImageFont.load_default()


class PillowTextRenderer:
    def __init__(self, font_path: str | None = None, font_size: int = 32):
        self.font_path = font_path
        self.font_size = font_size

    def render(self, spec: OverlaySpec) -> bytes:
        style = spec.style
        font = _load_font(style.font_path or self.font_path, style.font_size or self.font_size)

        measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
        left, top, right, bottom = measure.multiline_textbbox((0, 0), spec.text, font=font)

        pad = max(0, style.padding)
        width = max(1, right - left + 2 * pad)
        height = max(1, bottom - top + 2 * pad)

        canvas = Image.new("RGBA", (width, height), style.background or (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas)
        draw.multiline_text((pad - left, pad - top), spec.text, font=font, fill=style.color)

        output = io.BytesIO()
        canvas.save(output, format="PNG")
        logger.debug(f"Rendered overlay {spec.text[:20]!r} as {width}x{height}")
        return output.getvalue()
