# media_saver/savers/image_saver.py
"""
Image profile: acquisition plus image-only steps.

Wraps a ``FileSaver`` (composition, not inheritance) and adds:
1. Decoded-format check of the stored bytes after acquisition
2. Upright normalization from EXIF orientation (best-effort)
3. ``process()``: transform program, format-drift rename, text overlays
"""
from __future__ import annotations

import asyncio
import os
from typing import Any, Iterable, Optional, Sequence

from PIL import Image

from media_saver.core.errors import FormatUnsupportedError, RequiredArgumentMissingError
from media_saver.core.domain import OverlaySpec
from media_saver.core.ports import ImageEngine, OrientationNormalizer, TextRenderer
from media_saver.core.target import SaveTarget, discard
from media_saver.core.validators import extension_for_format
from media_saver.infra.image_engine import PillowImageEngine
from media_saver.infra.logging_config import LogContext, get_logger
from media_saver.infra.orientation import PillowOrientationNormalizer, normalize
from media_saver.infra.text_renderer import PillowTextRenderer
from media_saver.savers.file_saver import FileSaver
from media_saver.savers.overlay import composite
from media_saver.savers.pipeline import run_transform

logger = get_logger(__name__)

DEFAULT_IMAGE_EXTENSIONS = ("jpg", "png")


class ImageSaver:
    """
    Download, normalize and post-process images.

    Usage:
        saver = ImageSaver("/var/media")
        target = await saver.download("https://host/pic.jpg")
        target = await saver.process(
            target,
            transformer=ImagePipeline().resize(800, 800).png(),
            text_overlays=[OverlaySpec("Sold")],
            text_position={"x": 10, "y": 80},
        )
        target.file_name  # "<uuid>.png"
    """

    def __init__(
        self,
        target_dir: str | os.PathLike | None,
        valid_extensions: Optional[Iterable[str]] = DEFAULT_IMAGE_EXTENSIONS,
        *,
        file_saver: Optional[FileSaver] = None,
        engine: Optional[ImageEngine] = None,
        orientation: Optional[OrientationNormalizer] = None,
        text_renderer: Optional[TextRenderer] = None,
        **file_saver_kwargs,
    ):
        if valid_extensions is None:
            valid_extensions = DEFAULT_IMAGE_EXTENSIONS
        self.files = file_saver or FileSaver(target_dir, valid_extensions, **file_saver_kwargs)
        self.engine = engine or PillowImageEngine()
        self.orientation = orientation or PillowOrientationNormalizer()
        self.text_renderer = text_renderer or PillowTextRenderer()

    @classmethod
    def from_settings(cls, s=None, **kwargs) -> "ImageSaver":
        from media_saver.config import settings as default_settings

        s = s or default_settings
        kwargs.setdefault("engine", PillowImageEngine(s.max_image_pixels, s.output_quality))
        kwargs.setdefault("text_renderer", PillowTextRenderer(s.overlay_font_path, s.overlay_font_size))
        return cls(s.target_dir, s.image_valid_extensions, **kwargs)

    @property
    def target_dir(self):
        return self.files.target_dir

    @property
    def policy(self):
        return self.files.policy

    async def download(self, source: Any, target_name: Optional[str] = None) -> SaveTarget:
        """
        Acquire an image and normalize its orientation.

        Raises:
            FormatUnsupportedError: Also when the stored bytes do not decode as
                an image in an allowed format (the file is removed).
        """
        target = await self.files.download(source, target_name)
        await self._verify(target)
        await normalize(target.path, self.orientation)
        return target

    async def _verify(self, target: SaveTarget) -> None:
        log = LogContext(logger, file_name=target.file_name)
        loop = asyncio.get_running_loop()

        try:
            metadata = await loop.run_in_executor(None, self.engine.verify, target.path)
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            discard(target.path)
            log.warning(f"Stored file is not a valid image: {e}")
            raise FormatUnsupportedError("File is not a valid image") from e

        if not self.policy.accepts(extension_for_format(metadata.format)):
            discard(target.path)
            log.warning(f"Decoded format {metadata.format!r} is not allowed")
            raise FormatUnsupportedError()

    async def process(
        self,
        target: SaveTarget | str | None,
        transformer: Any = None,
        text_overlays: Optional[Sequence[OverlaySpec | str | dict]] = None,
        text_position: Any = None,
    ) -> SaveTarget:
        """
        Post-process a stored image.

        Args:
            target: SaveTarget from ``download()`` or a file name in ``target_dir``.
            transformer: ``ImagePipeline``, any object with ``apply(bytes) -> bytes``,
                or a plain callable.
            text_overlays: Texts to render and composite, bottom to top.
            text_position: Default position for overlays without their own:
                gravity keyword or ``{"x": 0-100, "y": 0-100}``.

        Returns:
            SaveTarget with the (possibly renamed) file.

        Raises:
            RequiredArgumentMissingError: No target, or nothing to do.
            OSError: Filesystem failure.
        """
        if isinstance(target, str) and target:
            target = SaveTarget(self.target_dir, target)

        if not isinstance(target, SaveTarget) or target.is_empty or not (transformer or text_overlays):
            raise RequiredArgumentMissingError()

        if transformer is not None:
            target = await run_transform(target, transformer, self.engine)

        if text_overlays:
            await composite(target, list(text_overlays), self.engine, self.text_renderer, text_position)

        return target
