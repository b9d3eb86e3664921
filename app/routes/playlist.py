"""Playlist routes — merged playlist as JSON or M3U."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from app.dependencies import get_playlist_service
from app.services.m3u_service import render_m3u
from app.services.playlist_service import PlaylistService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playlist"])


@router.get("/api/aggregate")
@router.get("/aggregate-m3u")
async def aggregate(
    format: str = "json",
    refresh: str = "false",
    playlists: PlaylistService = Depends(get_playlist_service),
):
    try:
        snapshot = await playlists.get_snapshot(refresh=refresh == "true")

        if format == "m3u":
            return Response(
                content=render_m3u(snapshot.channels),
                media_type="audio/x-mpegurl",
                headers={"Content-Disposition": 'attachment; filename="aggregated.m3u"'},
            )
        return snapshot.to_response()
    except Exception as e:
        logger.error(f"Error in aggregate endpoint: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e) or type(e).__name__})
