# media_saver/core/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union


# ============================================================================
# SOURCES
# ============================================================================

class SourceKind(str, Enum):
    URL = "url"
    UPLOAD_STREAM = "upload_stream"


@dataclass(frozen=True)
class SourceDescriptor:
    """
    Where the bytes come from.

    ``value`` is a URL string for ``SourceKind.URL`` and an inbound request
    (``starlette.requests.Request``) for ``SourceKind.UPLOAD_STREAM``.
    """
    kind: SourceKind
    value: Any

    @classmethod
    def url(cls, value: str) -> "SourceDescriptor":
        return cls(kind=SourceKind.URL, value=value)

    @classmethod
    def upload(cls, request: Any) -> "SourceDescriptor":
        return cls(kind=SourceKind.UPLOAD_STREAM, value=request)


@dataclass(frozen=True)
class UploadedFile:
    """First file part of a multipart body, spooled to a temporary file."""
    name: str
    temporary_path: Path


# ============================================================================
# OVERLAYS
# ============================================================================

class Gravity(str, Enum):
    """Named anchors for overlay placement."""
    NORTH = "north"
    NORTHEAST = "northeast"
    EAST = "east"
    SOUTHEAST = "southeast"
    SOUTH = "south"
    SOUTHWEST = "southwest"
    WEST = "west"
    NORTHWEST = "northwest"
    CENTER = "center"

    @classmethod
    def parse(cls, value: str) -> "Gravity":
        value = value.strip().lower()
        if value == "centre":
            return cls.CENTER
        return cls(value)


@dataclass(frozen=True)
class PercentPosition:
    """Overlay top-left corner as percentages of the base image size."""
    x: float
    y: float

    def __post_init__(self):
        for axis, value in (("x", self.x), ("y", self.y)):
            if not 0 <= value <= 100:
                raise ValueError(f"{axis}={value} is outside [0, 100]")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PercentPosition":
        return cls(x=float(data["x"]), y=float(data["y"]))


OverlayPosition = Union[str, Gravity, PercentPosition, Mapping[str, Any], None]


@dataclass(frozen=True)
class TextStyle:
    font_path: Optional[str] = None
    font_size: Optional[int] = None
    color: str = "white"
    background: Optional[str] = None  # None => transparent
    padding: int = 4


@dataclass(frozen=True)
class OverlaySpec:
    text: str
    style: TextStyle = field(default_factory=TextStyle)
    position: OverlayPosition = None


@dataclass(frozen=True)
class Placement:
    """Resolved overlay position: either an anchor or absolute pixels."""
    gravity: Optional[Gravity] = None
    left: Optional[int] = None
    top: Optional[int] = None

    @property
    def is_absolute(self) -> bool:
        return self.left is not None and self.top is not None


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    format: str  # lowercase Pillow format name, e.g. "jpeg", "png"
