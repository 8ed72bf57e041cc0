# media_saver/infra/upload_parser.py
"""
Multipart upload intake.

Parses an inbound Starlette/FastAPI request and spools the first file part
into a temporary file inside the upload directory, so the saver can move it
into place with a same-filesystem rename.
"""
from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect, Request

from media_saver.core.domain import UploadedFile
from media_saver.core.errors import SourceBrokenError
from media_saver.core.target import discard
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)

TEMP_PREFIX = ".upload-"


class StarletteUploadParser:
    """Reads ``request.form()`` and returns the first uploaded file."""

    def __init__(self, max_files: int = 1000, max_fields: int = 1000):
        self.max_files = max_files
        self.max_fields = max_fields

    async def parse(self, request: Request, upload_dir: Path) -> UploadedFile:
        """
        Raises:
            SourceBrokenError: The body could not be parsed or holds no file part.
            OSError: The temporary file could not be written.
        """
        try:
            form = await request.form(max_files=self.max_files, max_fields=self.max_fields)
        except (MultiPartException, HTTPException, ClientDisconnect, ValueError) as e:
            detail = getattr(e, "message", None) or getattr(e, "detail", None) or str(e)
            logger.warning(f"Upload parsing failed: {detail}")
            raise SourceBrokenError(detail or "File source is broken") from e

        try:
            upload = self._first_file(form)
            if upload is None:
                raise SourceBrokenError("Upload contains no files")

            temporary_path = await self._spool(upload, upload_dir)
        finally:
            await form.close()

        logger.debug(f"Upload spooled: name={upload.filename!r}, size={upload.size}")
        return UploadedFile(name=upload.filename, temporary_path=temporary_path)

    @staticmethod
    def _first_file(form) -> UploadFile | None:
        for _, value in form.multi_items():
            if isinstance(value, UploadFile) and value.filename:
                return value
        return None

    @classmethod
    async def _spool(cls, upload: UploadFile, upload_dir: Path) -> Path:
        await upload.seek(0)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, cls._copy_to_temporary, upload.file, upload_dir)

    @staticmethod
    def _copy_to_temporary(source, upload_dir: Path) -> Path:
        with tempfile.NamedTemporaryFile(dir=upload_dir, prefix=TEMP_PREFIX, delete=False) as tmp:
            temporary_path = Path(tmp.name)
            try:
                shutil.copyfileobj(source, tmp)
            except OSError:
                tmp.close()
                discard(temporary_path)
                raise
        return temporary_path
