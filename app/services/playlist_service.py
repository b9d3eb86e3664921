"""Playlist service — decides between the cached snapshot and a fresh aggregation."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.models.channel import AggregationSnapshot

if TYPE_CHECKING:
    from app.services.aggregation_service import AggregationService
    from app.services.cache_service import CacheService
    from app.services.source_service import SourceService

logger = logging.getLogger(__name__)


class PlaylistService:
    """Serves the merged playlist snapshot."""

    def __init__(
        self,
        source_service: "SourceService",
        aggregation_service: "AggregationService",
        cache_service: "CacheService",
    ):
        self.source_service = source_service
        self.aggregation_service = aggregation_service
        self.cache_service = cache_service

    async def refresh(self) -> AggregationSnapshot:
        """Aggregate all active sources and replace the cached snapshot."""
        logger.info("Starting M3U aggregation and caching...")
        sources = self.source_service.list_active_sources()
        logger.info(f"Found {len(sources)} active sources")
        snapshot = await self.aggregation_service.aggregate(sources)
        self.cache_service.save(snapshot)
        return snapshot

    async def get_snapshot(self, refresh: bool = False) -> AggregationSnapshot:
        if refresh:
            return await self.refresh()

        cached = self.cache_service.load()
        if cached is not None:
            return cached

        logger.info("No valid cached snapshot, refreshing")
        return await self.refresh()
