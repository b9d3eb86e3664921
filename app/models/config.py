"""Pydantic models for application configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Options(BaseModel):
    """Application options."""
    model_config = ConfigDict(extra="allow")

    cache_ttl: int = 3600
    refresh_interval: int = 3600
    auto_refresh: bool = True
    static_output_path: str = ""  # empty → <data_dir>/public/aggregated.m3u
    source_manager_password: str = ""


class AppConfig(BaseModel):
    """Root application configuration."""
    model_config = ConfigDict(extra="allow")

    options: Options = Field(default_factory=Options)
