"""TuneHost FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tunehost import __version__
from tunehost.config import Settings, settings as default_settings
from tunehost.services import init_services, shutdown_services

logger = logging.getLogger(__name__)


def _setup_logging(app_settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Per-request client logging is too chatty for background downloads
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Application factory."""
    from tunehost.api.routes import api_router, stream_router

    cfg = app_settings or default_settings

    music_dir = Path(cfg.music_dir)
    if not music_dir.is_dir():
        music_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created music directory: %s", music_dir)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        # === STARTUP ===
        _setup_logging(cfg)
        init_services(cfg)
        logger.info("TuneHost v%s started: listening on %s:%s", __version__, cfg.host, cfg.port)
        try:
            yield
        finally:
            # === SHUTDOWN ===
            await shutdown_services()
            logger.info("TuneHost shutting down")

    app = FastAPI(
        title=cfg.app_name,
        version=__version__,
        debug=cfg.debug,
        lifespan=_lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Range"],
        expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
    )

    app.include_router(stream_router)
    app.include_router(api_router, prefix=cfg.api_prefix)

    # Raw read-only view of the storage directory
    app.mount("/static", StaticFiles(directory=music_dir), name="music-static")

    # Web UI; mounted last so it never shadows API routes
    public_dir = Path(cfg.public_dir)
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")
        logger.info("Web UI mounted from %s", public_dir)
    else:
        logger.info("No web UI found at %s: API-only mode", public_dir)

    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "tunehost.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        workers=default_settings.uvicorn_workers,
        log_level=default_settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
