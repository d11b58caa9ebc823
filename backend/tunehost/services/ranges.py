"""HTTP ``Range`` header resolution (single range, ``bytes`` unit)."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SPEC = re.compile(r"\s*(\d*)\s*-\s*(\d*)\s*")


class RangeNotSatisfiable(ValueError):
    """No byte range in the header can be served from the current size."""

    def __init__(self, total_size: int, header: str):
        super().__init__(f"Range {header!r} not satisfiable for {total_size} bytes")
        self.total_size = total_size
        self.header = header
        # Response headers to send with the 416, filled in by the caller
        self.headers: dict[str, str] = {}


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span ``[start, end]``."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, total_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{total_size}"


def _parse_spec(spec: str, total_size: int) -> ByteRange | None:
    match = _SPEC.fullmatch(spec)
    if match is None:
        return None
    first, last = match.groups()

    if not first:
        # Suffix form "-N": the final N bytes
        if not last:
            return None
        suffix = int(last)
        if suffix == 0:
            return None
        start, end = max(total_size - suffix, 0), total_size - 1
    else:
        start = int(first)
        end = int(last) if last else total_size - 1
        end = min(end, total_size - 1)

    if start > end or start >= total_size:
        return None
    return ByteRange(start, end)


def resolve_range(total_size: int, header: str) -> ByteRange:
    """Resolve *header* against a resource of *total_size* bytes.

    Only the first satisfiable range of a multi-range header is honoured.
    Raises RangeNotSatisfiable for malformed headers, units other than
    ``bytes`` and ranges lying wholly outside the resource.
    """
    unit, sep, specs = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        raise RangeNotSatisfiable(total_size, header)

    for spec in specs.split(","):
        byte_range = _parse_spec(spec, total_size)
        if byte_range is not None:
            return byte_range
    raise RangeNotSatisfiable(total_size, header)
