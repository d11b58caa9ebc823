"""Remote audio ingestion: background fetch into the music directory."""

from __future__ import annotations

import asyncio
import logging
import posixpath
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlsplit

import aiofiles
import aiofiles.os
import httpx

from tunehost.utils.filenames import AUDIO_EXTENSIONS, check_filename, split_extension

logger = logging.getLogger(__name__)


class InvalidURLError(ValueError):
    """Source URL is missing or not an absolute http(s) URL."""


class UnsupportedFormatError(ValueError):
    """Source URL does not point at a supported audio file."""


class DownloadConflictError(RuntimeError):
    """A transfer to the same destination is already running."""


@dataclass
class DownloadJob:
    """One in-flight transfer, keyed by its destination path."""
    url: str
    filename: str
    destination: Path
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    task: asyncio.Task | None = None

    @property
    def temp_path(self) -> Path:
        return self.destination.with_name(f".{self.filename}.{self.job_id}.part")


def resolve_target_name(url: str | None, name: str | None = None) -> str:
    """Derive and validate the stored filename for *url*.

    The remote name is the percent-decoded last path segment of the URL; a
    caller-supplied *name* replaces its stem but keeps the remote extension.
    """
    if not url:
        raise InvalidURLError("Please provide a music url")

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidURLError(f"Not an http(s) url: {url!r}")

    remote_name = unquote(posixpath.basename(parts.path))
    _, ext = split_extension(remote_name)
    if ext not in AUDIO_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported file format: {ext or 'none'}")

    filename = f"{name}{ext}" if name else remote_name
    return check_filename(filename)


class DownloadService:
    """Starts transfers that outlive the request that triggered them."""

    def __init__(
        self,
        music_dir: str | Path,
        timeout: float = 300.0,
        reject_duplicates: bool = True,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self._music_dir = Path(music_dir)
        self._timeout = timeout
        self._reject_duplicates = reject_duplicates
        self._client_factory = client_factory or self._default_client
        self._jobs: dict[Path, list[DownloadJob]] = {}

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)

    def path_for(self, filename: str) -> Path:
        return self._music_dir / filename

    def is_downloading(self, filename: str) -> bool:
        return bool(self._jobs.get(self.path_for(filename)))

    @property
    def active_jobs(self) -> list[DownloadJob]:
        return [job for jobs in self._jobs.values() for job in jobs]

    async def exists(self, filename: str) -> bool:
        return await aiofiles.os.path.exists(self.path_for(filename))

    def start(self, url: str, filename: str) -> DownloadJob:
        """Register and schedule a transfer of *url* into *filename*.

        Check and registration run without yielding to the event loop, so two
        requests for the same destination cannot both pass the conflict check.
        """
        destination = self.path_for(filename)
        running = self._jobs.setdefault(destination, [])
        if running and self._reject_duplicates:
            raise DownloadConflictError(f"{filename} is already being downloaded")

        job = DownloadJob(url=url, filename=filename, destination=destination)
        running.append(job)
        job.task = asyncio.create_task(self._run(job), name=f"download:{filename}")
        logger.info("Queued download %s -> %s", url, filename)
        return job

    async def _run(self, job: DownloadJob) -> None:
        try:
            await asyncio.wait_for(self._transfer(job), timeout=self._timeout)
        except asyncio.CancelledError:
            logger.warning("Download cancelled for %s", job.filename)
            await self._discard(job)
            raise
        except Exception as exc:
            logger.error("Download failed for %s: %s", job.filename, exc or type(exc).__name__)
            await self._discard(job)
        else:
            logger.info("Download finished %s", job.filename)
        finally:
            self._forget(job)

    async def _transfer(self, job: DownloadJob) -> None:
        async with self._client_factory() as client:
            async with client.stream("GET", job.url) as response:
                response.raise_for_status()
                async with aiofiles.open(job.temp_path, "wb") as out:
                    async for chunk in response.aiter_bytes():
                        await out.write(chunk)
        await aiofiles.os.replace(job.temp_path, job.destination)

    async def _discard(self, job: DownloadJob) -> None:
        try:
            await aiofiles.os.remove(job.temp_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove partial file %s: %s", job.temp_path.name, exc)

    def _forget(self, job: DownloadJob) -> None:
        running = self._jobs.get(job.destination)
        if running is None:
            return
        if job in running:
            running.remove(job)
        if not running:
            del self._jobs[job.destination]

    async def drain(self) -> None:
        """Wait for every in-flight transfer to settle."""
        tasks = [job.task for job in self.active_jobs if job.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight transfers; their partial files are removed."""
        tasks = [job.task for job in self.active_jobs if job.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending download(s)", len(tasks))
