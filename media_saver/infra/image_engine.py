# media_saver/infra/image_engine.py
"""
Pillow-backed pixel engine.

- ``ImagePipeline``: chainable transform program (resize, blur, rotate, ...)
  that re-encodes to a chosen output format.
- ``PillowImageEngine``: metadata, decode verification, running transform
  programs and compositing overlay buffers onto a stored file.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable, Sequence

from PIL import Image, ImageFile, ImageFilter, ImageOps

from media_saver.core.domain import Gravity, ImageMetadata, Placement
from media_saver.core.ports import TransformProgram
from media_saver.core.validators import fold_format
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)

# Reject truncated images instead of rendering them with black bands
ImageFile.LOAD_TRUNCATED_IMAGES = False

# Formats Pillow cannot write with an alpha channel
_NO_ALPHA_FORMATS = {"JPEG", "BMP", "PPM", "EPS", "PDF"}
_LOSSY_FORMATS = {"JPEG", "WEBP"}


def _pillow_format(fmt: str) -> str:
    return fold_format(fmt).upper()


def encode(img: Image.Image, fmt: str, quality: int = 90) -> bytes:
    """Encode ``img`` as ``fmt``, flattening alpha for formats without it."""
    fmt = _pillow_format(fmt)
    if fmt in _NO_ALPHA_FORMATS and img.mode not in ("RGB", "L", "CMYK"):
        if img.mode in ("RGBA", "LA", "P"):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            img = background
        else:
            img = img.convert("RGB")

    output = io.BytesIO()
    if fmt in _LOSSY_FORMATS:
        img.save(output, format=fmt, quality=quality)
    else:
        img.save(output, format=fmt)
    return output.getvalue()


class ImagePipeline:
    """
    Chainable pixel transform program.

    Operations run in the order they were added; the result is encoded as
    ``to_format()`` if given, otherwise in the input image's own format::

        ImagePipeline().resize(1400, 1400).blur(3).to_format("png")
    """

    def __init__(self):
        self._ops: list[tuple[str, Callable[[Image.Image], Image.Image]]] = []
        self._format: str | None = None
        self._quality: int = 90

    def _add(self, name: str, op: Callable[[Image.Image], Image.Image]) -> "ImagePipeline":
        self._ops.append((name, op))
        return self

    def resize(self, width: int, height: int, fit: str = "cover") -> "ImagePipeline":
        """``cover`` crops to exactly width x height, ``inside`` keeps aspect within it, ``fill`` stretches."""
        size = (width, height)
        if fit == "cover":
            return self._add("resize", lambda im: ImageOps.fit(im, size, Image.Resampling.LANCZOS))
        if fit == "inside":
            return self._add("resize", lambda im: ImageOps.contain(im, size, Image.Resampling.LANCZOS))
        if fit == "fill":
            return self._add("resize", lambda im: im.resize(size, Image.Resampling.LANCZOS))
        raise ValueError(f"Unknown fit: {fit}")

    def blur(self, radius: float) -> "ImagePipeline":
        return self._add("blur", lambda im: im.filter(ImageFilter.GaussianBlur(radius)))

    def rotate(self, degrees: float) -> "ImagePipeline":
        return self._add("rotate", lambda im: im.rotate(-degrees, expand=True))

    def grayscale(self) -> "ImagePipeline":
        return self._add("grayscale", ImageOps.grayscale)

    def flip(self) -> "ImagePipeline":
        return self._add("flip", ImageOps.flip)

    def flop(self) -> "ImagePipeline":
        return self._add("flop", ImageOps.mirror)

    def to_format(self, fmt: str, quality: int = 90) -> "ImagePipeline":
        self._format = fmt
        self._quality = quality
        return self

    # Shortcuts mirroring common encoder calls
    def jpeg(self, quality: int = 90) -> "ImagePipeline":
        return self.to_format("jpeg", quality)

    def png(self) -> "ImagePipeline":
        return self.to_format("png")

    def webp(self, quality: int = 90) -> "ImagePipeline":
        return self.to_format("webp", quality)

    def tiff(self) -> "ImagePipeline":
        return self.to_format("tiff")

    @property
    def operations(self) -> list[str]:
        return [name for name, _ in self._ops]

    def apply(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as src:
            src_format = src.format or "PNG"
            img = src.copy()
        for _, op in self._ops:
            img = op(img)
        return encode(img, self._format or src_format, self._quality)


def gravity_offset(gravity: Gravity, base_size: tuple[int, int], overlay_size: tuple[int, int]) -> tuple[int, int]:
    """Top-left offset that anchors the overlay at ``gravity`` on the base image."""
    bw, bh = base_size
    ow, oh = overlay_size
    center_x, center_y = (bw - ow) // 2, (bh - oh) // 2
    right, bottom = bw - ow, bh - oh

    return {
        Gravity.NORTH: (center_x, 0),
        Gravity.NORTHEAST: (right, 0),
        Gravity.EAST: (right, center_y),
        Gravity.SOUTHEAST: (right, bottom),
        Gravity.SOUTH: (center_x, bottom),
        Gravity.SOUTHWEST: (0, bottom),
        Gravity.WEST: (0, center_y),
        Gravity.NORTHWEST: (0, 0),
        Gravity.CENTER: (center_x, center_y),
    }[gravity]


class PillowImageEngine:
    """
    Pixel operations on stored files.

    ``max_image_pixels`` is this engine's own decode limit; Pillow's
    process-wide ``Image.MAX_IMAGE_PIXELS`` is left untouched.
    """

    def __init__(self, max_image_pixels: int | None = 50_000_000, quality: int = 90):
        self.max_image_pixels = max_image_pixels
        self.quality = quality

    def _open(self, path: Path) -> Image.Image:
        """
        Open ``path`` lazily and enforce the pixel limit before any decoding.

        Raises:
            Image.DecompressionBombError: Pixel count above ``max_image_pixels``.
        """
        img = Image.open(path)
        if self.max_image_pixels is not None and img.width * img.height > self.max_image_pixels:
            pixels = img.width * img.height
            img.close()
            raise Image.DecompressionBombError(
                f"Image size ({pixels} pixels) exceeds limit of {self.max_image_pixels} pixels"
            )
        return img

    def metadata(self, path: Path) -> ImageMetadata:
        with self._open(path) as img:
            return ImageMetadata(width=img.width, height=img.height, format=(img.format or "").lower())

    def verify(self, path: Path) -> ImageMetadata:
        """
        Check that the file decodes as an image.

        Raises:
            OSError: Unreadable or undecodable file (``UnidentifiedImageError``).
            Image.DecompressionBombError: Pixel count above the parsing limit.
        """
        with self._open(path) as img:
            img.verify()
        # verify() leaves the image unusable, reopen for metadata
        return self.metadata(path)

    def transform(self, data: bytes, program: Any) -> bytes:
        if isinstance(program, TransformProgram):
            result = program.apply(data)
        elif callable(program):
            result = program(data)
        else:
            raise TypeError(f"Transform program must define apply() or be callable, got {type(program).__name__}")

        if not isinstance(result, (bytes, bytearray, memoryview)):
            raise TypeError(f"Transform program returned {type(result).__name__}, expected bytes")
        return bytes(result)

    def composite(self, path: Path, layers: Sequence[tuple[bytes, Placement]]) -> None:
        """Paint ``layers`` over the image at ``path`` in order and overwrite it in its own format."""
        with self._open(path) as src:
            fmt = src.format or "PNG"
            base = src.convert("RGBA")

        for data, placement in layers:
            with Image.open(io.BytesIO(data)) as overlay_src:
                overlay = overlay_src.convert("RGBA")

            if placement.is_absolute:
                offset = (placement.left, placement.top)
            else:
                offset = gravity_offset(placement.gravity or Gravity.CENTER, base.size, overlay.size)

            layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
            layer.paste(overlay, offset, overlay)
            base = Image.alpha_composite(base, layer)
            logger.debug(f"Composited {overlay.width}x{overlay.height} overlay at {offset}")

        Path(path).write_bytes(encode(base, fmt, self.quality))
