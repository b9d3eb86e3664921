"""Pydantic models for channels and aggregation snapshots."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Channel(BaseModel):
    """A single playable entry of a playlist."""
    model_config = ConfigDict(extra="ignore")

    name: str
    url: str
    group: Optional[str] = None
    logo: Optional[str] = None
    source: str = ""


class SourceStat(BaseModel):
    """Channel count contributed by one source during a refresh."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    url: str
    channel_count: int = Field(default=0, alias="channelCount")


class AggregationSnapshot(BaseModel):
    """One complete refresh outcome: channels, per-source stats and timestamp."""
    model_config = ConfigDict(populate_by_name=True)

    channels: list[Channel] = Field(default_factory=list)
    source_stats: list[SourceStat] = Field(default_factory=list, alias="sourceStats")
    last_updated_at: Optional[str] = Field(default=None, alias="lastUpdatedAt")

    @property
    def total_channels(self) -> int:
        return len(self.channels)

    def to_response(self) -> dict:
        """JSON envelope served by the aggregate endpoint."""
        return {
            "success": True,
            "totalChannels": self.total_channels,
            "lastUpdated": self.last_updated_at,
            "sources": [s.model_dump(by_alias=True) for s in self.source_stats],
            "channels": [c.model_dump(exclude_none=True) for c in self.channels],
        }
