"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.playlist_service import PlaylistService
from app.services.source_service import SourceService


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


def get_source_service(request: Request) -> SourceService:
    return request.app.state.source_service


def get_playlist_service(request: Request) -> PlaylistService:
    return request.app.state.playlist_service
