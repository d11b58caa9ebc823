"""Bounded, time-to-live metadata cache for stored files.

Maps an absolute file path to the size / modification time observed by the
last successful ``stat``. Entries expire a fixed time after insertion (reads
do not extend them) and the oldest insertion is evicted once the cache is
full. Failed stats are never stored.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from email.utils import formatdate
from os import stat_result
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMetadata:
    """Size and HTTP Last-Modified of a stored file."""
    path: str
    size: int
    last_modified: str
    exists: bool = True

    @classmethod
    def from_stat(cls, path: str, st: stat_result) -> "FileMetadata":
        return cls(
            path=path,
            size=st.st_size,
            last_modified=formatdate(st.st_mtime, usegmt=True),
        )


class MetadataCache:
    """Thread-safe insertion-ordered store with per-entry expiry."""

    def __init__(
        self,
        ttl_seconds: float = 7200,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, FileMetadata]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, path: str) -> FileMetadata | None:
        """Return the live entry for *path*, or None on miss / expiry."""
        with self._lock:
            item = self._entries.get(path)
            if item is None:
                return None
            expires_at, entry = item
            if expires_at <= self._clock():
                del self._entries[path]
                return None
            return entry

    def set(self, path: str, entry: FileMetadata) -> None:
        """Insert or overwrite *path*; restarts its expiry."""
        with self._lock:
            self._entries.pop(path, None)
            self._entries[path] = (self._clock() + self._ttl, entry)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Metadata cache full, evicted %s", evicted)

    def invalidate(self, path: str) -> bool:
        """Drop *path*. Returns True if an entry was present."""
        with self._lock:
            return self._entries.pop(path, None) is not None

    def purge_expired(self) -> int:
        """Remove every expired entry; returns how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [p for p, (expires_at, _) in self._entries.items() if expires_at <= now]
            for path in expired:
                del self._entries[path]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.get(path) is not None
