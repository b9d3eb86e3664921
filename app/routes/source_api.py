"""Source management API routes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_source_service
from app.models.source import PasswordCheck, SourceCreate, SourceUpdate
from app.services.source_service import (
    PasswordNotConfiguredError,
    SourceAlreadyExistsError,
    SourceNotFoundError,
    SourceService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sources", tags=["sources"])


@router.get("")
async def get_sources(registry: SourceService = Depends(get_source_service)):
    return {"sources": [s.model_dump() for s in registry.list_sources()]}


@router.post("")
async def add_source(payload: SourceCreate, registry: SourceService = Depends(get_source_service)):
    try:
        source = registry.create_source(payload)
    except SourceAlreadyExistsError:
        return JSONResponse({"error": "Source URL already exists"}, status_code=409)
    return {"status": "ok", "source": source.model_dump()}


@router.post("/verify-password")
async def verify_password(payload: PasswordCheck, registry: SourceService = Depends(get_source_service)):
    try:
        valid = registry.verify_password(payload.password)
    except PasswordNotConfiguredError as e:
        logger.error(str(e))
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)
    return {"success": True, "valid": valid}


@router.get("/{source_id}")
async def get_source(source_id: str, registry: SourceService = Depends(get_source_service)):
    try:
        return {"source": registry.get_source(source_id).model_dump()}
    except SourceNotFoundError:
        return JSONResponse({"error": "Source not found"}, status_code=404)


@router.put("/{source_id}")
async def update_source(
    source_id: str,
    payload: SourceUpdate,
    registry: SourceService = Depends(get_source_service),
):
    try:
        source = registry.update_source(source_id, payload)
    except SourceNotFoundError:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    return {"status": "ok", "source": source.model_dump()}


@router.delete("/{source_id}")
async def delete_source(source_id: str, registry: SourceService = Depends(get_source_service)):
    try:
        registry.delete_source(source_id)
    except SourceNotFoundError:
        return JSONResponse({"error": "Source not found"}, status_code=404)
    return {"status": "ok"}
