"""Human-readable sizes and public URLs."""

from __future__ import annotations

from urllib.parse import quote

from starlette.requests import Request

_UNITS = ("B", "KB", "MB", "GB")
_TRANSFER_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

# Characters encodeURIComponent leaves alone besides alphanumerics and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def format_file_size(size: int) -> str:
    """Format *size* with two decimals, capped at GB (``1.00KB``)."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f}{_UNITS[unit]}"


def format_transfer(total: int) -> str:
    """Compact size for counters: up to two decimals, trailing zeros dropped."""
    value = float(total)
    unit = 0
    while value >= 1024 and unit < len(_TRANSFER_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text}{_TRANSFER_UNITS[unit]}"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def public_base_url(request: Request) -> str:
    """``{proto}://{host}`` as seen by the client, honouring X-Forwarded-Proto."""
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def track_url(request: Request, filename: str) -> str:
    return f"{public_base_url(request)}/music/{encode_uri_component(filename)}"
