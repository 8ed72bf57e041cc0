# media_saver/core/ports.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from media_saver.core.domain import (
    ImageMetadata,
    OverlaySpec,
    Placement,
    UploadedFile,
)
from media_saver.core.target import SaveTarget


# ============================================================================
# COLLABORATORS
# ============================================================================

class ByteTransferClient(Protocol):
    async def download(self, url: str, destination: Path) -> None:
        """Stream ``url`` to ``destination``; raise on any transfer failure."""
        ...


class UploadParser(Protocol):
    async def parse(self, request: Any, upload_dir: Path) -> UploadedFile:
        """Spool the first file part into ``upload_dir``; raise SourceBrokenError if none."""
        ...


@runtime_checkable
class TransformProgram(Protocol):
    def apply(self, data: bytes) -> bytes: ...


class ImageEngine(Protocol):
    def metadata(self, path: Path) -> ImageMetadata: ...
    def transform(self, data: bytes, program: Any) -> bytes: ...
    def composite(self, path: Path, layers: Sequence[tuple[bytes, Placement]]) -> None: ...
    def verify(self, path: Path) -> ImageMetadata: ...


class OrientationNormalizer(Protocol):
    def rotate_to_upright(self, path: Path) -> Optional[bytes]: ...


class TextRenderer(Protocol):
    def render(self, spec: OverlaySpec) -> bytes: ...


# ============================================================================
# CAPABILITIES
# ============================================================================

@runtime_checkable
class Acquirable(Protocol):
    async def download(self, source: Any, target_name: Optional[str] = None) -> SaveTarget: ...


@runtime_checkable
class Processable(Protocol):
    async def process(
        self,
        target: SaveTarget | str,
        transformer: Any = None,
        text_overlays: Optional[Sequence[OverlaySpec]] = None,
        text_position: Any = None,
    ) -> SaveTarget: ...
