"""Aggregation service — fans out fetches and merges the results."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Sequence

from app.models.channel import AggregationSnapshot, Channel, SourceStat
from app.models.source import Source
from app.services.fetch_service import FetchService

logger = logging.getLogger(__name__)


class AggregationService:
    """Builds an :class:`AggregationSnapshot` from a list of sources.

    Sources are fetched concurrently; ``asyncio.gather`` returns results in
    argument order, so channel order and ``source_stats`` follow the input
    order whatever the completion order was.
    """

    def __init__(self, fetch_service: FetchService):
        self.fetch_service = fetch_service

    async def aggregate(self, sources: Sequence[Source]) -> AggregationSnapshot:
        logger.info(f"Aggregating {len(sources)} active source(s)")
        channel_lists: list[list[Channel]] = await asyncio.gather(
            *(self.fetch_service.fetch(source) for source in sources)
        )

        channels: list[Channel] = []
        for source_channels in channel_lists:
            channels.extend(source_channels)

        source_stats = [
            SourceStat(name=source.name, url=source.url, channel_count=len(source_channels))
            for source, source_channels in zip(sources, channel_lists)
        ]
        logger.info(f"Total channels aggregated: {len(channels)}")

        return AggregationSnapshot(
            channels=channels,
            source_stats=source_stats,
            last_updated_at=datetime.now(timezone.utc).isoformat(),
        )
