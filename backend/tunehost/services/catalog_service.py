"""Listing and deletion of stored tracks."""

from __future__ import annotations

import hmac
import logging
import os
import stat
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import aiofiles.os

from tunehost.services.metadata_cache import MetadataCache
from tunehost.utils.filenames import is_audio_file, split_extension
from tunehost.utils.formatting import format_file_size

logger = logging.getLogger(__name__)


class CatalogError(OSError):
    """The music directory could not be read."""


class UnauthorizedError(PermissionError):
    """Admin password missing or wrong."""


@dataclass(frozen=True)
class TrackInfo:
    filename: str
    size: str
    extension: str
    last_modified: str


@dataclass
class DeleteOutcome:
    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def song_name(filename: str) -> str:
    """Loose match key: stem up to the first ``-``, trimmed and lower-cased.

    ``"Song - Artist.mp3"`` and ``"song-live.flac"`` both yield ``"song"``.
    """
    stem, _ = split_extension(filename)
    return stem.split("-", 1)[0].strip().lower()


def parse_names(names: str | list[str] | None) -> list[str]:
    """Accept a list or a comma-separated string; blanks are dropped."""
    if not names:
        return []
    if isinstance(names, str):
        names = names.split(",")
    return [n.strip() for n in names if n and n.strip()]


class CatalogService:
    """Directory-level view of ``music_dir``."""

    def __init__(self, music_dir: str | Path, cache: MetadataCache, admin_password: str):
        self._music_dir = Path(music_dir)
        self._cache = cache
        self._admin_password = admin_password

    def check_password(self, password: object) -> None:
        """Non-string values (e.g. a JSON number) never match."""
        if not isinstance(password, str) or not password or not hmac.compare_digest(
            password.encode("utf-8"), self._admin_password.encode("utf-8")
        ):
            raise UnauthorizedError("Invalid password")

    async def _audio_files(self) -> list[str]:
        try:
            entries = await aiofiles.os.listdir(self._music_dir)
        except OSError as exc:
            raise CatalogError(f"Cannot read music directory: {exc.strerror or exc}") from exc
        return sorted(name for name in entries if is_audio_file(name))

    async def list_tracks(self) -> list[TrackInfo]:
        """Fresh stat of every audio file; the metadata cache is not consulted."""
        tracks: list[TrackInfo] = []
        for name in await self._audio_files():
            try:
                st = await aiofiles.os.stat(self._music_dir / name)
            except FileNotFoundError:
                continue  # removed while listing
            if not stat.S_ISREG(st.st_mode):
                continue
            tracks.append(
                TrackInfo(
                    filename=name,
                    size=format_file_size(st.st_size),
                    extension=split_extension(name)[1][1:].upper(),
                    last_modified=datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M:%S"),
                )
            )
        return tracks

    async def find_matches(self, names: list[str]) -> list[str]:
        wanted = {n.lower() for n in names}
        return [f for f in await self._audio_files() if song_name(f) in wanted]

    async def select(self, names: str | list[str] | None, delete_all: bool) -> list[str]:
        """Files targeted by a delete request; ValueError when nothing was asked for."""
        if delete_all:
            return await self._audio_files()
        wanted = parse_names(names)
        if not wanted:
            raise ValueError("Please provide names parameter or set all=true")
        return await self.find_matches(wanted)

    def delete(self, filenames: list[str]) -> DeleteOutcome:
        """Unlink each file and drop its cache entry.

        Unlink and invalidation run back to back on the calling thread, so no
        request can observe the cached entry after the file is gone.
        """
        outcome = DeleteOutcome()
        for name in filenames:
            path = self._music_dir / name
            try:
                os.unlink(path)
            except OSError as exc:
                logger.error("Failed to delete %s: %s", name, exc)
                outcome.failed[name] = exc.strerror or str(exc)
                if isinstance(exc, FileNotFoundError):
                    self._cache.invalidate(str(path))
                continue
            self._cache.invalidate(str(path))
            outcome.deleted.append(name)
        if outcome.deleted:
            logger.info("Deleted %d track(s): %s", len(outcome.deleted), ", ".join(outcome.deleted))
        return outcome
