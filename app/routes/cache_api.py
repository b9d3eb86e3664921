"""Cache management API routes."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_cache_service, get_config_service, get_playlist_service
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.playlist_service import PlaylistService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cache"])

_background_tasks: set[asyncio.Task] = set()


@router.get("/api/cache/status")
async def cache_status(
    cache: CacheService = Depends(get_cache_service),
    cfg: ConfigService = Depends(get_config_service),
):
    status = cache.status()
    status["ttl_seconds"] = cfg.get_cache_ttl()
    return status


async def _refresh_in_background(playlists: PlaylistService) -> None:
    try:
        await playlists.refresh()
    except Exception as e:
        logger.error(f"Background refresh failed: {e}", exc_info=True)


@router.post("/api/cache/refresh")
async def trigger_cache_refresh(playlists: PlaylistService = Depends(get_playlist_service)):
    task = asyncio.create_task(_refresh_in_background(playlists))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return {"status": "refresh_started", "message": "Cache refresh has been triggered in the background"}


@router.post("/api/cache/clear")
async def clear_cache(cache: CacheService = Depends(get_cache_service)):
    cache.clear()
    return {"status": "ok", "message": "Cache cleared"}
