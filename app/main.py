"""Application factory — wires services, middleware, routes and the refresh loop.

Run with::

    uvicorn app.main:create_app --factory --host 0.0.0.0 --port 8000
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.database import DB_NAME, init_db
from app.routes import cache_api, health, playlist, source_api, ui
from app.services.aggregation_service import AggregationService
from app.services.cache_service import CacheService
from app.services.config_service import ConfigService
from app.services.fetch_service import FetchService
from app.services.http_client import HttpClientService
from app.services.playlist_service import PlaylistService
from app.services.source_service import SourceService

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

# Data directory - use environment variable or default to /data (Docker) or ./data (local)
DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

# Delay before the first background check so startup is not slowed down
INITIAL_REFRESH_DELAY = 10


# ============================================
# BACKGROUND REFRESH
# ============================================


async def background_refresh_loop(app: FastAPI):
    """Periodically refresh the cached snapshot once it is older than the TTL."""
    cfg: ConfigService = app.state.config_service
    cache: CacheService = app.state.cache_service
    playlists: PlaylistService = app.state.playlist_service

    logger.info("Background refresh task started")
    await asyncio.sleep(INITIAL_REFRESH_DELAY)

    while True:
        try:
            if not cache.is_fresh(cfg.get_cache_ttl()):
                logger.info("Cache expired, triggering refresh...")
                snapshot = await playlists.refresh()
                logger.info(f"Background refresh cached {snapshot.total_channels} channels")
            else:
                logger.info(f"Cache still valid. Last refresh: {cache.status()['last_updated']}")

            refresh_interval = cfg.refresh_interval
            logger.debug(f"Next cache check in {refresh_interval} seconds")
            await asyncio.sleep(refresh_interval)

        except asyncio.CancelledError:
            logger.info("Background refresh task cancelled")
            break
        except Exception as e:
            logger.error(f"Background refresh error: {e}")
            await asyncio.sleep(60)


# ============================================
# FASTAPI APPLICATION
# ============================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown"""
    cfg: ConfigService = app.state.config_service

    background_task: Optional[asyncio.Task] = None
    if cfg.get_auto_refresh():
        background_task = asyncio.create_task(background_refresh_loop(app))

    yield

    if background_task:
        background_task.cancel()
        try:
            await background_task
        except asyncio.CancelledError:
            pass

    await app.state.http_client.close()
    logger.info("Application shutdown complete")


def create_app(
    data_dir: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build a fully-wired FastAPI app storing its state under *data_dir*."""
    data_dir = data_dir or DATA_DIR
    os.makedirs(data_dir, exist_ok=True)

    cfg = ConfigService(data_dir)
    cfg.load()
    db_path = os.path.join(data_dir, DB_NAME)
    init_db(db_path)

    http = HttpClientService(transport=transport)
    cache = CacheService(db_path)
    sources = SourceService(cfg, db_path)
    aggregation = AggregationService(FetchService(http))
    playlists = PlaylistService(sources, aggregation, cache)

    app = FastAPI(title="M3U Aggregator", lifespan=lifespan)

    # Attach state for DI
    app.state.config_service = cfg
    app.state.http_client = http
    app.state.cache_service = cache
    app.state.source_service = sources
    app.state.playlist_service = playlists

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    for r in (ui, health, source_api, cache_api, playlist):
        app.include_router(r.router)

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
