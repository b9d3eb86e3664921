"""Cache service — persists the latest aggregation snapshot in SQLite."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from app.database import db_connect
from app.models.channel import AggregationSnapshot, Channel, SourceStat

logger = logging.getLogger(__name__)

BATCH_SIZE = 500


class CacheService:
    """Stores exactly one snapshot: the channel rows plus one metadata row.

    ``save`` is delete-then-insert and commits each batch on its own, so a
    reader running alongside a refresh may see a partial generation.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, snapshot: AggregationSnapshot) -> None:
        conn = db_connect(self.db_path)
        try:
            try:
                conn.execute("DELETE FROM aggregated_channels")
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Error deleting previous channels: {e}")

            channels = snapshot.channels
            for start in range(0, len(channels), BATCH_SIZE):
                batch = [
                    (ch.name, ch.url, ch.group, ch.logo, ch.source)
                    for ch in channels[start:start + BATCH_SIZE]
                ]
                try:
                    conn.executemany(
                        "INSERT INTO aggregated_channels "
                        "(name, url, group_title, logo, source_name) VALUES (?,?,?,?,?)",
                        batch,
                    )
                    conn.commit()
                except Exception as e:
                    conn.rollback()
                    logger.error(f"Error inserting batch {start // BATCH_SIZE}: {e}")

            try:
                conn.execute("DELETE FROM aggregation_metadata")
                conn.execute(
                    "INSERT INTO aggregation_metadata "
                    "(last_updated_at, total_channels, source_stats) VALUES (?,?,?)",
                    (
                        snapshot.last_updated_at or datetime.now(timezone.utc).isoformat(),
                        snapshot.total_channels,
                        json.dumps([s.model_dump(by_alias=True) for s in snapshot.source_stats]),
                    ),
                )
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Error inserting metadata: {e}")

            logger.info(f"Cached {snapshot.total_channels} channels")
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> Optional[AggregationSnapshot]:
        """Return the cached snapshot, or ``None`` on a cache miss."""
        conn = db_connect(self.db_path)
        try:
            meta = conn.execute(
                "SELECT last_updated_at, source_stats FROM aggregation_metadata "
                "ORDER BY last_updated_at DESC, id DESC LIMIT 1"
            ).fetchone()
            if meta is None:
                return None

            rows = conn.execute(
                "SELECT name, url, group_title, logo, source_name "
                "FROM aggregated_channels ORDER BY id ASC"
            ).fetchall()
        finally:
            conn.close()

        if not rows:
            logger.info("Cache metadata present but no channels stored, treating as a miss")
            return None

        try:
            stats = [SourceStat.model_validate(s) for s in json.loads(meta["source_stats"] or "[]")]
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable source stats: {e}")
            stats = []

        channels = [
            Channel(
                name=r["name"],
                url=r["url"],
                group=r["group_title"] or None,
                logo=r["logo"] or None,
                source=r["source_name"],
            )
            for r in rows
        ]
        return AggregationSnapshot(
            channels=channels,
            source_stats=stats,
            last_updated_at=meta["last_updated_at"],
        )

    # ------------------------------------------------------------------
    # Status / validity
    # ------------------------------------------------------------------

    def status(self) -> dict:
        conn = db_connect(self.db_path)
        try:
            meta = conn.execute(
                "SELECT last_updated_at, total_channels, source_stats FROM aggregation_metadata "
                "ORDER BY last_updated_at DESC, id DESC LIMIT 1"
            ).fetchone()
            stored = conn.execute("SELECT COUNT(*) FROM aggregated_channels").fetchone()[0]
        finally:
            conn.close()

        sources: list = []
        if meta is not None:
            try:
                sources = json.loads(meta["source_stats"] or "[]")
            except (json.JSONDecodeError, TypeError):
                sources = []

        return {
            "cached": meta is not None and stored > 0,
            "last_updated": meta["last_updated_at"] if meta else None,
            "total_channels": meta["total_channels"] if meta else 0,
            "stored_channels": stored,
            "sources": sources,
        }

    def is_fresh(self, ttl_seconds: int) -> bool:
        status = self.status()
        if not status["cached"] or not status["last_updated"]:
            return False
        try:
            last_time = datetime.fromisoformat(status["last_updated"])
        except (ValueError, TypeError):
            return False
        if last_time.tzinfo is None:
            last_time = last_time.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - last_time).total_seconds()
        return age < ttl_seconds

    # ------------------------------------------------------------------
    # Clear
    # ------------------------------------------------------------------

    def clear(self) -> None:
        conn = db_connect(self.db_path)
        try:
            conn.execute("DELETE FROM aggregated_channels")
            conn.execute("DELETE FROM aggregation_metadata")
            conn.commit()
            logger.info("Cache cleared")
        finally:
            conn.close()
