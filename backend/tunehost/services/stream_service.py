"""Range-aware audio streaming backed by the metadata cache."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

import aiofiles
from aiofiles.threadpool.binary import AsyncBufferedReader
from starlette.concurrency import run_in_threadpool

from tunehost.services.metadata_cache import FileMetadata, MetadataCache
from tunehost.services.ranges import ByteRange, RangeNotSatisfiable, resolve_range
from tunehost.services.transfer_stats import TransferStats
from tunehost.utils.filenames import check_filename, content_type_for
from tunehost.utils.formatting import encode_uri_component

logger = logging.getLogger(__name__)


class TrackNotFoundError(FileNotFoundError):
    """Requested track is missing or not a regular file."""


class StreamOpenError(OSError):
    """Track exists in metadata but could not be opened for reading."""


class StreamTruncatedError(OSError):
    """File ended before the advertised number of bytes was read."""


@dataclass
class PreparedStream:
    """An opened track ready to be sent: status, headers and body iterator."""
    status_code: int
    headers: dict[str, str]
    body: AsyncIterator[bytes]
    nbytes: int


class StreamService:
    """Serves tracks from ``music_dir`` in bounded chunks."""

    CACHE_CONTROL = "public, max-age=3600"

    def __init__(
        self,
        music_dir: str | Path,
        cache: MetadataCache,
        stats: TransferStats,
        chunk_size: int = 64 * 1024,
    ):
        self._music_dir = Path(music_dir)
        self._cache = cache
        self._stats = stats
        self._chunk_size = chunk_size

    @property
    def music_dir(self) -> Path:
        return self._music_dir

    def path_for(self, filename: str) -> Path:
        return self._music_dir / filename

    async def get_metadata(self, filename: str) -> FileMetadata:
        """Validated cache lookup, filling the cache from ``stat`` on a miss."""
        check_filename(filename)
        path = str(self.path_for(filename))

        entry = self._cache.get(path)
        if entry is not None and entry.exists:
            return entry

        try:
            st = await run_in_threadpool(os.stat, path)
        except OSError as exc:
            raise TrackNotFoundError(filename) from exc
        if not stat.S_ISREG(st.st_mode):
            raise TrackNotFoundError(filename)

        entry = FileMetadata.from_stat(path, st)
        self._cache.set(path, entry)
        return entry

    def base_headers(self, filename: str, meta: FileMetadata) -> dict[str, str]:
        return {
            "Cache-Control": self.CACHE_CONTROL,
            "Last-Modified": meta.last_modified,
            "Accept-Ranges": "bytes",
            "Content-Type": content_type_for(filename),
            "Content-Disposition": f"inline; filename*=UTF-8''{encode_uri_component(filename)}",
            "X-Content-Type-Options": "nosniff",
        }

    def _resolve(self, filename: str, meta: FileMetadata, range_header: str) -> ByteRange:
        try:
            return resolve_range(meta.size, range_header)
        except RangeNotSatisfiable as exc:
            exc.headers = self.base_headers(filename, meta)
            exc.headers["Content-Range"] = f"bytes */{meta.size}"
            raise

    async def prepare(self, filename: str, range_header: str | None = None) -> PreparedStream:
        """Resolve, open and account for a stream of *filename*.

        Raises InvalidFilenameError / AccessDeniedError, TrackNotFoundError,
        RangeNotSatisfiable or StreamOpenError. Nothing has been sent to the
        client when any of them is raised.
        """
        meta = await self.get_metadata(filename)
        # Fail on an unsatisfiable range before touching the file
        if range_header:
            self._resolve(filename, meta, range_header)

        try:
            handle = await aiofiles.open(meta.path, "rb")
        except OSError as exc:
            self._cache.invalidate(meta.path)
            logger.error("Cannot open %s: %s", filename, exc)
            raise StreamOpenError(filename) from exc

        try:
            st = os.fstat(handle.fileno())
            if st.st_size != meta.size:
                logger.info("Size of %s changed since cached stat, refreshing", filename)
                meta = FileMetadata.from_stat(meta.path, st)
                self._cache.set(meta.path, meta)

            headers = self.base_headers(filename, meta)
            if range_header:
                byte_range = self._resolve(filename, meta, range_header)
                status_code = 206
                headers["Content-Range"] = byte_range.content_range(meta.size)
            else:
                byte_range = ByteRange(0, meta.size - 1)
                status_code = 200
            nbytes = byte_range.length
            headers["Content-Length"] = str(nbytes)
        except BaseException:
            await handle.close()
            raise

        self._stats.record(nbytes)
        return PreparedStream(
            status_code=status_code,
            headers=headers,
            body=self._iter_file(handle, filename, byte_range.start, nbytes),
            nbytes=nbytes,
        )

    async def _iter_file(
        self,
        handle: AsyncBufferedReader,
        filename: str,
        start: int,
        nbytes: int,
    ) -> AsyncIterator[bytes]:
        """Yield exactly *nbytes* from *start*; always closes *handle*."""
        remaining = nbytes
        try:
            if start:
                await handle.seek(start)
            while remaining > 0:
                chunk = await handle.read(min(self._chunk_size, remaining))
                if not chunk:
                    raise StreamTruncatedError(
                        f"{filename}: ended with {remaining} of {nbytes} bytes unsent"
                    )
                remaining -= len(chunk)
                yield chunk
        except OSError as exc:
            # Headers are already out; the server aborts the connection
            logger.error("Stream error for %s: %s", filename, exc)
            raise
        finally:
            await handle.close()
