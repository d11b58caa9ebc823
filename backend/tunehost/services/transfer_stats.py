"""Process-wide transfer counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class StatsSnapshot:
    total_bytes: int
    requests: int


class TransferStats:
    """Bytes-served and request counters, updated atomically.

    Bytes are counted when a stream starts, for the full amount it intends
    to send, not for what the client actually receives.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total_bytes = 0
        self._requests = 0

    def record(self, nbytes: int) -> None:
        if nbytes < 0:
            raise ValueError("nbytes must be non-negative")
        with self._lock:
            self._total_bytes += nbytes
            self._requests += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(total_bytes=self._total_bytes, requests=self._requests)
