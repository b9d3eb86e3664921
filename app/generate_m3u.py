"""Static playlist generator — writes the merged playlist to a file.

Runs the same fetch → parse → render pipeline as the aggregate endpoint but
reads the source registry directly and never touches the snapshot cache.
Meant for scheduled jobs (cron, CI) that publish a static ``.m3u``.

Usage:
    python -m app.generate_m3u [--data-dir DIR] [--output PATH]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

import httpx

from app.database import DB_NAME, init_db
from app.services.aggregation_service import AggregationService
from app.services.config_service import ConfigService
from app.services.fetch_service import FetchService
from app.services.http_client import HttpClientService
from app.services.m3u_service import render_m3u
from app.services.source_service import SourceService

logger = logging.getLogger(__name__)


async def generate_static_playlist(
    source_service: SourceService,
    aggregation_service: AggregationService,
    output_path: str,
) -> int:
    """Aggregate the active sources and write the rendered playlist.

    Returns the number of channels written.
    """
    sources = source_service.list_active_sources()
    logger.info(f"Found {len(sources)} active sources")

    snapshot = await aggregation_service.aggregate(sources)
    content = render_m3u(snapshot.channels)

    output_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(output_dir, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info(f"M3U file with {snapshot.total_channels} channels saved to {output_path}")
    return snapshot.total_channels


async def _run(data_dir: str, output: Optional[str], transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    cfg = ConfigService(data_dir)
    cfg.load()
    db_path = os.path.join(data_dir, DB_NAME)
    init_db(db_path)

    http = HttpClientService(transport=transport)
    try:
        return await generate_static_playlist(
            SourceService(cfg, db_path),
            AggregationService(FetchService(http)),
            output or cfg.get_static_output_path(),
        )
    finally:
        await http.close()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Write the merged M3U playlist to a static file.")
    parser.add_argument(
        "--data-dir",
        default=os.environ.get("DATA_DIR", "./data"),
        help="Directory holding config.json and app.db (default: $DATA_DIR or ./data)",
    )
    parser.add_argument("--output", help="Output file (default: <data-dir>/public/aggregated.m3u)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    try:
        os.makedirs(args.data_dir, exist_ok=True)
        asyncio.run(_run(args.data_dir, args.output))
    except Exception as e:
        logger.error(f"Failed to generate M3U file: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
