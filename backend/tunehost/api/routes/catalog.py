"""Track catalog routes: listing and password-protected deletion."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from tunehost.api.deps import parse_delete_request, read_delete_params
from tunehost.schemas.music import DeleteResult, TrackItem, TrackList
from tunehost.services import get_catalog_service
from tunehost.services.catalog_service import CatalogError, UnauthorizedError
from tunehost.utils.formatting import track_url

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/music/list", response_model=TrackList)
async def list_music(request: Request):
    """All stored tracks with fresh size and modification time."""
    catalog = get_catalog_service()
    try:
        tracks = await catalog.list_tracks()
    except CatalogError as exc:
        logger.error("Listing failed: %s", exc)
        raise HTTPException(500, {"error": "Get music list failed", "details": str(exc)})

    items = [
        TrackItem(
            filename=t.filename,
            url=track_url(request, t.filename),
            size=t.size,
            extension=t.extension,
            last_modified=t.last_modified,
        )
        for t in tracks
    ]
    return TrackList(total=len(items), data=items)


@router.post("/delete/music", response_model=DeleteResult)
async def delete_music(raw: dict[str, Any] = Depends(read_delete_params)):
    """Delete tracks by loose song name, or all of them.

    A name matches every file whose stem, cut at the first ``-``, equals it
    case-insensitively: ``song`` removes ``song-live.mp3`` and
    ``Song - Remix.flac``.
    """
    catalog = get_catalog_service()
    try:
        catalog.check_password(raw.get("password"))
    except UnauthorizedError:
        raise HTTPException(401, "Unauthorized: Invalid password")

    params = parse_delete_request(raw)

    try:
        targets = await catalog.select(params.names, params.delete_all)
    except CatalogError as exc:
        raise HTTPException(500, {"error": "Failed to delete song(s)", "details": str(exc)})
    except ValueError as exc:
        raise HTTPException(400, str(exc))

    if not targets:
        raise HTTPException(404, "No matching songs found")

    outcome = catalog.delete(targets)
    if outcome.failed:
        raise HTTPException(
            500,
            {
                "error": "Failed to delete song(s)",
                "details": f"{len(outcome.failed)} of {len(targets)} file(s) could not be deleted",
                "deletedFiles": outcome.deleted,
                "failedFiles": outcome.failed,
            },
        )

    return DeleteResult(
        message=f"Deleted {len(outcome.deleted)} song(s)",
        deleted_files=outcome.deleted,
    )
