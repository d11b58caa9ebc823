"""Business logic services: singleton registry."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from tunehost.config import Settings, settings as default_settings

if TYPE_CHECKING:
    from tunehost.services.catalog_service import CatalogService
    from tunehost.services.download_service import DownloadService
    from tunehost.services.metadata_cache import MetadataCache
    from tunehost.services.stream_service import StreamService
    from tunehost.services.transfer_stats import TransferStats

logger = logging.getLogger(__name__)

_metadata_cache: MetadataCache | None = None
_transfer_stats: TransferStats | None = None
_stream_service: StreamService | None = None
_download_service: DownloadService | None = None
_catalog_service: CatalogService | None = None
_cache_sweeper: asyncio.Task | None = None


async def _sweep_cache(cache: MetadataCache, period: float) -> None:
    """Periodically drop expired metadata entries."""
    while True:
        try:
            await asyncio.sleep(period)
        except asyncio.CancelledError:
            break
        try:
            purged = cache.purge_expired()
            if purged:
                logger.debug("Metadata cache sweep removed %d entries", purged)
        except Exception as e:
            logger.error("Metadata cache sweep error: %s", e)


def init_services(app_settings: Settings | None = None, start_background: bool = True) -> None:
    """Create and wire up all service singletons."""
    global _metadata_cache, _transfer_stats, _stream_service
    global _download_service, _catalog_service, _cache_sweeper

    from tunehost.services.catalog_service import CatalogService
    from tunehost.services.download_service import DownloadService
    from tunehost.services.metadata_cache import MetadataCache
    from tunehost.services.stream_service import StreamService
    from tunehost.services.transfer_stats import TransferStats

    cfg = app_settings or default_settings
    music_dir = Path(cfg.music_dir)

    _metadata_cache = MetadataCache(
        ttl_seconds=cfg.cache_ttl_seconds,
        max_entries=cfg.cache_max_entries,
    )
    _transfer_stats = TransferStats()
    _stream_service = StreamService(
        music_dir,
        cache=_metadata_cache,
        stats=_transfer_stats,
        chunk_size=cfg.stream_chunk_size,
    )
    _download_service = DownloadService(
        music_dir,
        timeout=cfg.download_timeout_seconds,
        reject_duplicates=cfg.reject_duplicate_downloads,
    )
    _catalog_service = CatalogService(
        music_dir,
        cache=_metadata_cache,
        admin_password=cfg.admin_password,
    )

    if start_background and cfg.cache_check_period_seconds > 0:
        _cache_sweeper = asyncio.create_task(
            _sweep_cache(_metadata_cache, cfg.cache_check_period_seconds)
        )
    logger.info("Services initialized for %s", music_dir)


async def shutdown_services() -> None:
    """Stop the cache sweeper and cancel in-flight downloads."""
    global _cache_sweeper
    if _cache_sweeper:
        _cache_sweeper.cancel()
        try:
            await _cache_sweeper
        except asyncio.CancelledError:
            pass
        _cache_sweeper = None
    if _download_service:
        await _download_service.shutdown()


def get_metadata_cache() -> MetadataCache:
    if _metadata_cache is None:
        raise RuntimeError("Services not initialized: call init_services() first")
    return _metadata_cache


def get_transfer_stats() -> TransferStats:
    if _transfer_stats is None:
        raise RuntimeError("Services not initialized: call init_services() first")
    return _transfer_stats


def get_stream_service() -> StreamService:
    if _stream_service is None:
        raise RuntimeError("Services not initialized: call init_services() first")
    return _stream_service


def get_download_service() -> DownloadService:
    if _download_service is None:
        raise RuntimeError("Services not initialized: call init_services() first")
    return _download_service


def get_catalog_service() -> CatalogService:
    if _catalog_service is None:
        raise RuntimeError("Services not initialized: call init_services() first")
    return _catalog_service
