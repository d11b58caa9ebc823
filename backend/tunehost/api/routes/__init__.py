"""API route registration."""

from fastapi import APIRouter

from tunehost.api.routes import catalog, downloads, music

# Mounted under settings.api_prefix
api_router = APIRouter()

api_router.include_router(downloads.router, tags=["downloads"])
api_router.include_router(catalog.router, tags=["catalog"])

# Mounted at the root: /music/{filename}, /stats
stream_router = APIRouter()

stream_router.include_router(music.router, tags=["music"])
