"""Pydantic models for playlist sources."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALLOWED_SCHEMES = ("http", "https", "rtmp", "rtsp")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class Source(BaseModel):
    """A configured M3U playlist source."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    url: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: str = Field(default_factory=_utcnow)


class SourceCreate(BaseModel):
    """Payload accepted when registering a new source."""

    name: str
    url: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("url")
    @classmethod
    def _url_is_absolute(cls, v: str) -> str:
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
            raise ValueError("url must be an absolute http(s), rtmp or rtsp URL")
        return v

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class SourceUpdate(BaseModel):
    """Partial update of a source; unset fields are left untouched."""

    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PasswordCheck(BaseModel):
    password: str = ""
