"""UI page routes — HTML template rendering."""
from __future__ import annotations

import os

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.dependencies import get_cache_service, get_source_service
from app.services.cache_service import CacheService
from app.services.source_service import SourceService

router = APIRouter(tags=["ui"])
templates = Jinja2Templates(directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates"))


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    registry: SourceService = Depends(get_source_service),
    cache: CacheService = Depends(get_cache_service),
):
    base_url = str(request.base_url).rstrip("/")
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "sources": registry.list_sources(),
            "cache": cache.status(),
            "m3u_url": f"{base_url}/api/aggregate?format=m3u",
            "json_url": f"{base_url}/api/aggregate?format=json",
        },
    )
