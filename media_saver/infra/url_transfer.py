# media_saver/infra/url_transfer.py
"""
Remote byte transfer over HTTP(S).

Streams a URL straight to a file on disk with retries, timeout and an
optional size ceiling.  Any failure is raised as ``TransferError``; the
caller decides what to do with the partially written file.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import urlsplit

import aiohttp

from media_saver.infra.http_client import get_transfer_session
from media_saver.infra.logging_config import get_logger

logger = get_logger(__name__)


class TransferError(Exception):
    """
    Remote transfer failure.

    Attributes:
        retryable: Whether another attempt could succeed.
    """

    def __init__(self, message: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message)


class AiohttpTransferClient:
    """Downloads a URL to a destination path using the shared aiohttp session."""

    def __init__(
        self,
        timeout: float = 60.0,
        connect_timeout: float = 15.0,
        max_retries: int = 1,
        retry_backoff: float = 2.0,
        max_size_bytes: int | None = None,
        chunk_size: int = 64 * 1024,
        session: aiohttp.ClientSession | None = None,
    ):
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self.max_size_bytes = max_size_bytes
        self.chunk_size = chunk_size
        self._session = session

    @classmethod
    def from_settings(cls, s=None) -> "AiohttpTransferClient":
        from media_saver.config import settings as default_settings

        s = s or default_settings
        return cls(
            timeout=s.download_timeout_seconds,
            connect_timeout=s.download_connect_timeout_seconds,
            max_retries=s.download_max_retries,
            retry_backoff=s.download_retry_backoff_seconds,
            max_size_bytes=s.max_file_size_bytes,
            chunk_size=s.download_chunk_size,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None:
            return self._session
        return get_transfer_session(total=self.timeout, connect=self.connect_timeout)

    async def download(self, url: str, destination: Path) -> None:
        """
        Stream ``url`` into ``destination`` (overwritten on each attempt).

        Raises:
            TransferError: After the last attempt failed.
        """
        host = urlsplit(url).netloc
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                await self._download_once(url, destination, attempt)
                return
            except asyncio.TimeoutError as e:
                last_error = TransferError(f"Timed out after {self.timeout:.0f}s downloading from {host}")
                last_error.__cause__ = e
            except aiohttp.ClientError as e:
                last_error = TransferError(str(e) or e.__class__.__name__)
                last_error.__cause__ = e
            except TransferError as e:
                last_error = e
                if not e.retryable:
                    break

            if attempt < self.max_retries - 1:
                wait_time = (attempt + 1) * self.retry_backoff
                logger.warning(
                    f"Download from {host} failed (attempt {attempt + 1}/{self.max_retries}), "
                    f"retrying in {wait_time:.0f}s: {last_error}"
                )
                await asyncio.sleep(wait_time)

        logger.error(f"Download from {host} failed: {last_error}")
        raise last_error

    async def _download_once(self, url: str, destination: Path, attempt: int) -> None:
        session = self._get_session()
        client_timeout = aiohttp.ClientTimeout(
            total=self.timeout,
            connect=self.connect_timeout,
        )

        async with session.get(url, timeout=client_timeout) as response:
            if response.status != 200:
                # 4xx will not fix itself
                raise TransferError(
                    f"HTTP {response.status} {response.reason or ''}".strip(),
                    retryable=response.status >= 500,
                )

            content_length = response.headers.get("Content-Length")
            expected_size = int(content_length) if content_length else None

            if self.max_size_bytes and expected_size and expected_size > self.max_size_bytes:
                raise TransferError(
                    f"File size {expected_size} bytes exceeds limit of {self.max_size_bytes} bytes",
                    retryable=False,
                )

            logger.debug(
                f"Download started: attempt={attempt + 1}, "
                f"Content-Length={content_length or 'absent'}, "
                f"Content-Type={response.headers.get('Content-Type', 'absent')}"
            )

            # Disk I/O runs in the default executor, off the event loop
            loop = asyncio.get_running_loop()
            received = 0
            f = await loop.run_in_executor(None, open, destination, "wb")
            try:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    received += len(chunk)
                    if self.max_size_bytes and received > self.max_size_bytes:
                        raise TransferError("File size exceeds limit", retryable=False)
                    await loop.run_in_executor(None, f.write, chunk)
            finally:
                await loop.run_in_executor(None, f.close)

            if expected_size is not None and received < expected_size:
                raise TransferError(f"Incomplete download: received {received} of {expected_size} bytes")

            logger.info(f"Download complete: {received / 1024:.0f}KB")
