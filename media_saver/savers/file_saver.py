# media_saver/savers/file_saver.py
"""
File acquisition: remote URL or inbound multipart upload -> file on disk.

The stored file is named ``<target_name>.<extension>`` inside ``target_dir``;
``target_name`` defaults to a fresh UUID.  The extension is taken from the
URL path or the uploaded file's declared name and must be in the allow-list.
"""
from __future__ import annotations

import asyncio
import os
import uuid
from pathlib import Path
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

from starlette.requests import Request

from media_saver.core.domain import SourceDescriptor, SourceKind
from media_saver.core.errors import (
    CannotLoadError,
    FormatUnsupportedError,
    RequiredArgumentMissingError,
    SourceBrokenError,
)
from media_saver.core.ports import ByteTransferClient, UploadParser
from media_saver.core.target import SaveTarget, discard
from media_saver.core.validators import ValidationPolicy, extension_from_name, extension_from_url
from media_saver.infra.logging_config import LogContext, get_logger
from media_saver.infra.upload_parser import StarletteUploadParser
from media_saver.infra.url_transfer import AiohttpTransferClient, TransferError

logger = get_logger(__name__)

ALLOWED_URL_SCHEMES = ("http", "https")


def classify_source(source: Any) -> SourceDescriptor:
    """
    Turn a caller-supplied source into a ``SourceDescriptor``.

    Raises:
        RequiredArgumentMissingError: ``source`` is empty.
        SourceBrokenError: ``source`` is neither a URL string nor a request.
    """
    if isinstance(source, SourceDescriptor):
        if source.kind not in (SourceKind.URL, SourceKind.UPLOAD_STREAM) or source.value is None:
            raise SourceBrokenError()
        return source
    if source is None or source == "":
        raise RequiredArgumentMissingError("Required argument is missed: source")
    if isinstance(source, str):
        return SourceDescriptor.url(source)
    if isinstance(source, Request):
        return SourceDescriptor.upload(source)
    raise SourceBrokenError()


def parse_url(url: str) -> str:
    """
    Validate a URL string and return it.

    Raises:
        SourceBrokenError: Not a well-formed absolute http(s) URL.
    """
    try:
        parsed = urlsplit(url)
        # Accessing .port validates it
        parsed.port
    except ValueError as e:
        raise SourceBrokenError(str(e) or "File source is broken") from e

    if parsed.scheme not in ALLOWED_URL_SCHEMES:
        raise SourceBrokenError(f"Invalid URL scheme: {parsed.scheme or 'none'}")
    if not parsed.netloc:
        raise SourceBrokenError("Invalid URL: missing host")
    return url


class FileSaver:
    """
    Download or receive files and store them under a normalized name.

    Usage:
        saver = FileSaver("/var/media", valid_extensions=["pdf", "txt"])
        target = await saver.download("https://host/report.pdf")
        target.file_name  # "<uuid>.pdf"
    """

    def __init__(
        self,
        target_dir: str | os.PathLike | None,
        valid_extensions: Optional[Iterable[str]] = None,
        *,
        transfer_client: Optional[ByteTransferClient] = None,
        upload_parser: Optional[UploadParser] = None,
    ):
        if not target_dir:
            raise RequiredArgumentMissingError("Required argument is missed: target_dir")

        self.target_dir = Path(target_dir).absolute()
        self.target_dir.mkdir(parents=True, exist_ok=True)
        self.policy = ValidationPolicy(valid_extensions)
        self.transfer_client = transfer_client or AiohttpTransferClient.from_settings()
        self.upload_parser = upload_parser or StarletteUploadParser()

    @classmethod
    def from_settings(cls, s=None, **kwargs) -> "FileSaver":
        from media_saver.config import settings as default_settings

        s = s or default_settings
        return cls(s.target_dir, s.file_valid_extensions, **kwargs)

    @property
    def valid_extensions(self) -> ValidationPolicy:
        return self.policy

    def new_target(self) -> SaveTarget:
        return SaveTarget(self.target_dir)

    async def download(self, source: Any, target_name: Optional[str] = None) -> SaveTarget:
        """
        Acquire ``source`` into the target directory.

        Args:
            source: URL string, inbound ``Request`` with a multipart body,
                or a ``SourceDescriptor``.
            target_name: Output file name without extension (default: UUID hex).

        Returns:
            SaveTarget pointing at the stored file.

        Raises:
            RequiredArgumentMissingError, SourceBrokenError,
            FormatUnsupportedError, CannotLoadError, OSError
        """
        descriptor = classify_source(source)
        target_name = target_name or uuid.uuid4().hex
        log = LogContext(logger, target_name=target_name, source_kind=descriptor.kind.value)

        if descriptor.kind is SourceKind.URL:
            target = await self._download_url(descriptor.value, target_name, log)
        else:
            target = await self._receive_upload(descriptor.value, target_name, log)

        log.bind(file_name=target.file_name).info(f"Saved {target.path}")
        return target

    async def _download_url(self, url: Any, target_name: str, log: LogContext) -> SaveTarget:
        if not isinstance(url, str):
            raise SourceBrokenError()
        parse_url(url)

        # Validate before any network transfer
        extension = extension_from_url(url)
        if not self.policy.accepts(extension):
            log.info(f"Rejected URL with extension {extension!r}")
            raise FormatUnsupportedError()

        target = self.new_target()
        file_name = f"{target_name}.{extension}"
        path = target.path_for(file_name)

        try:
            await self.transfer_client.download(url, path)
        except CannotLoadError:
            discard(path)
            raise
        except (TransferError, asyncio.TimeoutError) as e:
            discard(path)
            log.warning(f"Transfer failed: {e}")
            raise CannotLoadError(str(e) or "Cannot load file") from e
        except OSError:
            # Local disk failure, not a transport one
            discard(path)
            raise
        except Exception as e:
            discard(path)
            log.warning(f"Transfer failed: {e.__class__.__name__}: {e}")
            raise CannotLoadError(str(e) or "Cannot load file") from e

        return target.commit(file_name)

    async def _receive_upload(self, request: Any, target_name: str, log: LogContext) -> SaveTarget:
        uploaded = await self.upload_parser.parse(request, self.target_dir)

        extension = extension_from_name(uploaded.name)
        if not self.policy.accepts(extension):
            discard(uploaded.temporary_path)
            log.info(f"Rejected upload {uploaded.name!r}")
            raise FormatUnsupportedError()

        target = self.new_target()
        file_name = f"{target_name}.{extension}"

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, os.replace, uploaded.temporary_path, target.path_for(file_name))
        except OSError:
            discard(uploaded.temporary_path)
            raise

        return target.commit(file_name)
