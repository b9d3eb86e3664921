"""Fetch service — downloads one upstream playlist and parses it."""
from __future__ import annotations

import logging
import time

import httpx

from app.models.channel import Channel
from app.models.source import Source
from app.services.http_client import HttpClientService
from app.services.m3u_service import parse_m3u

logger = logging.getLogger(__name__)


class FetchService:
    """Single best-effort GET per source; failures degrade to no channels."""

    def __init__(self, http_client: HttpClientService):
        self.http_client = http_client

    async def fetch(self, source: Source) -> list[Channel]:
        logger.info(f"Fetching M3U from: {source.url}")
        try:
            client = await self.http_client.get_client()
            start_time = time.time()
            response = await client.get(source.url)
            elapsed = time.time() - start_time
            if not response.is_success:
                logger.warning(f"Failed to fetch {source.url}: status {response.status_code} in {elapsed:.1f}s")
                return []
            content = response.text
        except httpx.HTTPError as e:
            logger.error(f"Error fetching {source.url}: {e!r}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error fetching {source.url}: {e!r}")
            return []

        return parse_m3u(content, source.name)
