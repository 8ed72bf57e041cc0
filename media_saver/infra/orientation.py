# media_saver/infra/orientation.py
"""
Upright normalization from EXIF orientation.

Best-effort: a missing tag, an unsupported codec or corrupt data leaves the
file as it was.  The file keeps its format (and therefore its extension).
"""
from __future__ import annotations

import asyncio
from pathlib import Path

from PIL import Image, ImageOps

from media_saver.infra.image_engine import encode
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)

EXIF_ORIENTATION_TAG = 0x0112


class PillowOrientationNormalizer:
    def __init__(self, quality: int = 95):
        self.quality = quality

    def rotate_to_upright(self, path: Path) -> bytes | None:
        """
        Return the upright re-encoded bytes, or None if already upright.

        Raises:
            OSError: If the file cannot be decoded or re-encoded.
        """
        with Image.open(path) as img:
            orientation = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
            if orientation == 1:
                return None

            fmt = img.format or "JPEG"
            upright = ImageOps.exif_transpose(img)

        logger.debug(f"Rotated {Path(path).name} upright (orientation={orientation})")
        return encode(upright, fmt, self.quality)


async def normalize(path: Path, normalizer=None) -> bool:
    """
    Rewrite the file at ``path`` upright in place.

    Any failure is logged and swallowed; acquisition stays successful.

    Returns:
        True if the file was rewritten.
    """
    normalizer = normalizer or PillowOrientationNormalizer()
    loop = asyncio.get_running_loop()

    try:
        data = await loop.run_in_executor(None, normalizer.rotate_to_upright, path)
        if data is None:
            return False
        await loop.run_in_executor(None, Path(path).write_bytes, data)
        return True
    except Exception as e:
        logger.debug(f"Orientation normalization skipped for {Path(path).name}: {e.__class__.__name__}: {e}")
        return False
