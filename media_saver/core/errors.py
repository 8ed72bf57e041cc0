# media_saver/core/errors.py
"""
Typed errors for the acquisition and processing pipeline.

Every error carries a stable machine-readable ``code`` so callers can branch
without parsing messages, and a ``status_code`` the HTTP transport uses to
build its response.  Filesystem failures are not wrapped: they propagate as
the built-in ``OSError`` family.
"""
from __future__ import annotations


class SaverError(Exception):
    """Base class for all saver errors."""

    code: str = "SaverError"
    status_code: int = 500

    def __init__(self, detail: str = "Internal error"):
        self.detail = detail
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"error": self.detail, "code": self.code}


class RequiredArgumentMissingError(SaverError):
    """Mandatory constructor or call argument is absent (400)."""

    code = "RequiredArgumentMissing"
    status_code = 400

    def __init__(self, detail: str = "Required argument is missed"):
        super().__init__(detail)


class SourceBrokenError(SaverError):
    """Source is neither a parseable URL nor a usable upload (400)."""

    code = "SourceBroken"
    status_code = 400

    def __init__(self, detail: str = "File source is broken"):
        super().__init__(detail)


class FormatUnsupportedError(SaverError):
    """Extension (or decoded format) is not in the allow-list (415)."""

    code = "FormatUnsupported"
    status_code = 415

    def __init__(self, detail: str = "Unsupported file format"):
        super().__init__(detail)


class CannotLoadError(SaverError):
    """Remote transfer failed after the source passed validation (502)."""

    code = "CannotLoad"
    status_code = 502

    def __init__(self, detail: str = "Cannot load file"):
        super().__init__(detail)
