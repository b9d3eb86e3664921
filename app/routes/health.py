"""Health check route."""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter

router = APIRouter(tags=["health"])

try:
    APP_VERSION = version("m3u-aggregator")
except PackageNotFoundError:
    APP_VERSION = "0.0.0+unknown"


@router.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}
