# media_saver/savers/pipeline.py
"""
Transform runner: feed the stored file through a transform program and keep
its extension truthful to the bytes that come out.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from media_saver.core.ports import ImageEngine
from media_saver.core.target import SaveTarget, rename
from media_saver.core.validators import extension_for_format, same_format
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)


async def run_transform(target: SaveTarget, program: Any, engine: ImageEngine) -> SaveTarget:
    """
    Overwrite ``target`` with ``program``'s output, renaming on format drift.

    A ``.jpg`` file whose transform emits PNG bytes ends up as ``.png`` and no
    ``.jpg`` is left behind.  ``jpg`` and ``jpeg`` count as the same format.

    Raises:
        OSError: Read, write or rename failed (``target`` still points at an
            existing file).
        TypeError: ``program`` is not a transform program.
    """
    loop = asyncio.get_running_loop()
    path: Path = target.path

    data = await loop.run_in_executor(None, path.read_bytes)
    output = await loop.run_in_executor(None, engine.transform, data, program)
    await loop.run_in_executor(None, path.write_bytes, output)

    metadata = await loop.run_in_executor(None, engine.metadata, path)
    logger.debug(
        f"Transformed {target.file_name}: {len(data)} -> {len(output)} bytes, "
        f"{metadata.width}x{metadata.height} {metadata.format}"
    )

    if same_format(target.extension, metadata.format):
        return target

    new_file_name = f"{target.stem}.{extension_for_format(metadata.format)}"
    renamed = await loop.run_in_executor(None, rename, target, new_file_name)
    logger.info(f"Format drift: {target.file_name} -> {renamed.file_name}")
    return renamed
