"""Remote ingestion endpoint: responds before the transfer completes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from tunehost.schemas.music import DownloadAccepted, DownloadExists
from tunehost.services import get_download_service
from tunehost.services.download_service import (
    DownloadConflictError,
    InvalidURLError,
    UnsupportedFormatError,
    resolve_target_name,
)
from tunehost.utils.filenames import AccessDeniedError, InvalidFilenameError
from tunehost.utils.formatting import track_url

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/download", response_model=DownloadAccepted | DownloadExists)
async def download_track(request: Request, url: str | None = None, name: str | None = None):
    """Fetch *url* into the music directory in the background.

    The outcome of the transfer is not reported here; poll the list endpoint
    or request the returned URL.
    """
    service = get_download_service()
    try:
        filename = resolve_target_name(url, name)
    except InvalidURLError as exc:
        raise HTTPException(400, str(exc))
    except UnsupportedFormatError:
        raise HTTPException(400, "Unsupported file format")
    except AccessDeniedError:
        raise HTTPException(403, "Access denied")
    except InvalidFilenameError:
        raise HTTPException(400, "Invalid filename")

    public_url = track_url(request, filename)
    if await service.exists(filename):
        return DownloadExists(
            warning="The song already exists",
            message="The song already exists",
            filename=filename,
            url=public_url,
        )

    try:
        service.start(url, filename)
    except DownloadConflictError as exc:
        raise HTTPException(409, str(exc))

    return DownloadAccepted(
        message="The song added to download list successfully",
        filename=filename,
        future_url=public_url,
    )
