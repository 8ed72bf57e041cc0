# media_saver/core/validators.py
"""
Extension allow-list checks.

Comparison is case-sensitive against the policy as configured: ``"JPG"`` does
not match a policy of ``{"jpg"}``.  A name without a dot yields the whole name
as its extension, which normally fails validation.
"""
from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit

# Pillow reports JPEG files as "JPEG" (multi-picture camera JPEGs as "MPO");
# on disk we always write ".jpg"
_FORMAT_ALIASES = {"jpg": "jpeg", "mpo": "jpeg", "tif": "tiff"}
_EXTENSION_ALIASES = {"jpeg": "jpg"}


class ValidationPolicy(frozenset):
    """Read-only set of accepted extensions."""

    def __new__(cls, extensions: Iterable[str] | None = None):
        return super().__new__(cls, extensions or ())

    def accepts(self, extension: str) -> bool:
        return extension in self


def extension_from_name(name: str) -> str:
    """Return the substring after the final ``.`` (or the whole name)."""
    return name.rsplit(".", 1)[-1]


def extension_from_url(url: str) -> str:
    """Extract the extension from the last segment of the URL path."""
    path = urlsplit(url).path
    file_name = path.rsplit("/", 1)[-1]
    return extension_from_name(file_name)


def is_accepted(name_or_extension: str, policy: Iterable[str]) -> bool:
    return extension_from_name(name_or_extension) in policy


def fold_format(value: str) -> str:
    """Normalize an extension or format name to a format name (jpg -> jpeg)."""
    value = value.lower()
    return _FORMAT_ALIASES.get(value, value)


def extension_for_format(fmt: str) -> str:
    """Normalize a format name to the extension written on disk (jpeg -> jpg)."""
    fmt = fold_format(fmt)
    return _EXTENSION_ALIASES.get(fmt, fmt)


def same_format(extension: str, fmt: str) -> bool:
    return fold_format(extension) == fold_format(fmt)
