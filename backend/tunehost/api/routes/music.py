"""Track streaming with HTTP range support, plus transfer stats."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Header, HTTPException, Response
from fastapi.responses import StreamingResponse

from tunehost.schemas.music import TransferStatsResponse
from tunehost.services import get_stream_service, get_transfer_stats
from tunehost.services.ranges import RangeNotSatisfiable
from tunehost.services.stream_service import StreamOpenError, TrackNotFoundError
from tunehost.utils.filenames import AccessDeniedError, InvalidFilenameError
from tunehost.utils.formatting import format_transfer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/music/{filename}")
async def stream_track(
    filename: str,
    range_header: str | None = Header(default=None, alias="range"),
):
    """Stream a stored track; answers 206 for satisfiable ``Range`` requests."""
    service = get_stream_service()
    try:
        prepared = await service.prepare(filename, range_header)
    except AccessDeniedError:
        raise HTTPException(403, "Access denied")
    except InvalidFilenameError:
        raise HTTPException(400, "Invalid filename")
    except TrackNotFoundError:
        raise HTTPException(404, "File not found")
    except RangeNotSatisfiable as exc:
        return Response(status_code=416, headers=exc.headers)
    except StreamOpenError:
        raise HTTPException(500, "Internal server error")

    return StreamingResponse(
        prepared.body,
        status_code=prepared.status_code,
        headers=prepared.headers,
    )


@router.get("/stats", response_model=TransferStatsResponse)
async def transfer_stats():
    """Bytes and requests served since process start."""
    snapshot = get_transfer_stats().snapshot()
    return TransferStatsResponse(
        total_transferred=format_transfer(snapshot.total_bytes),
        total_requests=snapshot.requests,
    )
