# media_saver/core/target.py
"""
Owned ``{directory, file_name, path}`` state for one saved artifact.

``SaveTarget`` is an immutable snapshot: ``path`` is always derived from
``directory`` and ``file_name`` and a new snapshot is committed only after
the filesystem operation it describes has succeeded.
"""
from __future__ import annotations

import errno
import os
from dataclasses import dataclass, replace
from pathlib import Path

from media_saver.core.validators import extension_from_name
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SaveTarget:
    """One saved file inside the output directory."""

    directory: Path
    file_name: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "directory", Path(self.directory).absolute())

    @property
    def path(self) -> Path | None:
        if self.file_name is None:
            return None
        return self.directory / self.file_name

    @property
    def is_empty(self) -> bool:
        return self.file_name is None

    @property
    def stem(self) -> str:
        self._require_file()
        name, dot, _ = self.file_name.rpartition(".")
        return name if dot else self.file_name

    @property
    def extension(self) -> str:
        self._require_file()
        return extension_from_name(self.file_name)

    def commit(self, file_name: str) -> "SaveTarget":
        """Return a new snapshot pointing at ``file_name``."""
        return replace(self, file_name=file_name)

    def path_for(self, file_name: str) -> Path:
        """Where ``file_name`` would live, without committing to it."""
        return self.directory / file_name

    def _require_file(self) -> None:
        if self.file_name is None:
            raise ValueError("SaveTarget has no file yet")

    def __str__(self) -> str:
        return self.file_name or ""


def rename(target: SaveTarget, new_file_name: str) -> SaveTarget:
    """
    Rename the file on disk, then commit the new name.

    An existing file at the new name is never overwritten.

    Raises:
        FileExistsError: ``new_file_name`` is already taken.
        OSError: If the rename fails; ``target`` is still valid in that case.
    """
    if target.file_name == new_file_name:
        return target

    new_path = target.path_for(new_file_name)
    if new_path.exists():
        raise FileExistsError(errno.EEXIST, "Rename target already exists", str(new_path))
    os.replace(target.path, new_path)
    logger.debug(f"Renamed {target.file_name} -> {new_file_name}")
    return target.commit(new_file_name)


def discard(path: str | os.PathLike | None) -> bool:
    """
    Best-effort deletion.

    Used only on cleanup paths that run while another error is already being
    raised; a failed delete is logged and never replaces that error.

    Returns:
        True if a file was removed.
    """
    if path is None:
        return False
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Best-effort cleanup of {path} failed: {e}")
        return False
