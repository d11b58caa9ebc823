"""Filename validation for stored audio files."""

from __future__ import annotations

import posixpath
import re

AUDIO_EXTENSIONS: frozenset[str] = frozenset({".mp3", ".wav", ".flac", ".m4a"})

CONTENT_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Hiragana, Katakana, CJK unified ideographs, Hangul syllables, Thai
_SCRIPTS = "\u3040-\u309f\u30a0-\u30ff\u4e00-\u9fa5\uac00-\ud7af\u0e00-\u0e7f"
_WORD = "A-Za-z0-9_"

FILENAME_PATTERN = re.compile(
    rf"[{_WORD}{_SCRIPTS}]"
    rf"[{_WORD}{_SCRIPTS}\s\-_.(),，（）+]+"
    r"\.(?i:mp3|wav|flac|m4a)"
)


class InvalidFilenameError(ValueError):
    """Name does not match the allow-list."""


class AccessDeniedError(InvalidFilenameError):
    """Name normalizes to a path that escapes the storage directory."""


def split_extension(name: str) -> tuple[str, str]:
    """Return ``(stem, lower-cased extension)`` of a bare filename."""
    stem, ext = posixpath.splitext(name)
    return stem, ext.lower()


def is_audio_file(name: str) -> bool:
    return split_extension(name)[1] in AUDIO_EXTENSIONS


def content_type_for(name: str) -> str:
    return CONTENT_TYPES.get(split_extension(name)[1], DEFAULT_CONTENT_TYPE)


def check_filename(name: str) -> str:
    """Validate *name* and return it unchanged.

    Raises InvalidFilenameError when the allow-list rejects the name and
    AccessDeniedError when its normalized form contains a ``..`` segment.
    """
    if not name or not FILENAME_PATTERN.fullmatch(name):
        raise InvalidFilenameError(f"Invalid filename: {name!r}")

    normalized = posixpath.normpath(name.replace("\\", "/"))
    if ".." in normalized:
        raise AccessDeniedError(f"Access denied: {name!r}")
    return name


def is_valid_filename(name: str) -> bool:
    try:
        check_filename(name)
    except InvalidFilenameError:
        return False
    return True
