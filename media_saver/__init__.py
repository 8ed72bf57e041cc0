# media_saver/__init__.py
"""
Fetch-and-normalize for user-submitted or remote media.

Canonical imports:
    from media_saver import FileSaver, ImageSaver, ImagePipeline, OverlaySpec
    from media_saver import FormatUnsupportedError, SaverError
"""
from media_saver.core.domain import (  # noqa: F401
    Gravity,
    OverlaySpec,
    PercentPosition,
    SourceDescriptor,
    SourceKind,
    TextStyle,
)
from media_saver.core.errors import (  # noqa: F401
    CannotLoadError,
    FormatUnsupportedError,
    RequiredArgumentMissingError,
    SaverError,
    SourceBrokenError,
)
from media_saver.core.target import SaveTarget  # noqa: F401
from media_saver.infra.image_engine import ImagePipeline  # noqa: F401
from media_saver.savers.file_saver import FileSaver  # noqa: F401
from media_saver.savers.image_saver import ImageSaver  # noqa: F401

__all__ = [
    "CannotLoadError",
    "FileSaver",
    "FormatUnsupportedError",
    "Gravity",
    "ImagePipeline",
    "ImageSaver",
    "OverlaySpec",
    "PercentPosition",
    "RequiredArgumentMissingError",
    "SaveTarget",
    "SaverError",
    "SourceBrokenError",
    "SourceDescriptor",
    "SourceKind",
    "TextStyle",
]
