# media_saver/savers/overlay.py
"""Text overlay compositing onto a stored image."""
from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Sequence

from media_saver.core.domain import Gravity, OverlaySpec, PercentPosition, Placement, TextStyle
from media_saver.core.ports import ImageEngine, TextRenderer
from media_saver.core.target import SaveTarget
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)


def resolve_position(position: Any, width: int, height: int) -> Placement:
    """
    Turn a caller position into a placement on a ``width`` x ``height`` image.

    - ``str`` / ``Gravity``: named anchor (``"south"``, ``"northeast"``, ...)
    - ``{x, y}`` percentages: ``left = width * x / 100``, ``top = height * y / 100``
    - anything else: compositor default (centre)
    """
    if isinstance(position, Gravity):
        return Placement(gravity=position)
    if isinstance(position, str):
        try:
            return Placement(gravity=Gravity.parse(position))
        except ValueError:
            logger.warning(f"Unknown overlay gravity {position!r}, using default")
            return Placement()
    if isinstance(position, Mapping):
        try:
            position = PercentPosition.from_mapping(position)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid overlay position {dict(position)!r}: {e}")
            return Placement()
    if isinstance(position, PercentPosition):
        return Placement(
            left=round(width * position.x / 100),
            top=round(height * position.y / 100),
        )
    return Placement()


def as_overlay_spec(item: Any) -> OverlaySpec:
    """Accept ``OverlaySpec``, a plain string or a ``{"text": ...}`` mapping."""
    if isinstance(item, OverlaySpec):
        return item
    if isinstance(item, str):
        return OverlaySpec(text=item)
    if isinstance(item, Mapping) and "text" in item:
        style = item.get("style")
        if isinstance(style, Mapping):
            style = TextStyle(**style)
        return OverlaySpec(
            text=item["text"],
            style=style or TextStyle(),
            position=item.get("position"),
        )
    raise TypeError(f"Cannot build an overlay from {type(item).__name__}")


async def composite(
    target: SaveTarget,
    overlays: Sequence[Any],
    engine: ImageEngine,
    renderer: TextRenderer,
    default_position: Any = None,
) -> None:
    """
    Render each overlay and paint them onto ``target`` in list order
    (the first overlay ends up underneath later ones).

    The file is overwritten at the same path; its extension never changes.
    """
    if not overlays:
        return

    loop = asyncio.get_running_loop()
    specs = [as_overlay_spec(item) for item in overlays]

    buffers = await asyncio.gather(
        *(loop.run_in_executor(None, renderer.render, spec) for spec in specs)
    )
    metadata = await loop.run_in_executor(None, engine.metadata, target.path)

    layers = []
    for spec, data in zip(specs, buffers):
        position = spec.position if spec.position is not None else default_position
        layers.append((data, resolve_position(position, metadata.width, metadata.height)))

    await loop.run_in_executor(None, engine.composite, target.path, layers)
    logger.info(f"Composited {len(layers)} overlay(s) onto {target.file_name}")
