"""SQLite database — schema and connection helpers.

Usage
-----
    conn = db_connect(db_path)
    try:
        conn.execute(...)
        conn.commit()
    finally:
        conn.close()
"""
from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

DB_NAME = "app.db"


# ---------------------------------------------------------------------------
# Low-level connection helpers
# ---------------------------------------------------------------------------

def db_connect(db_path: str) -> sqlite3.Connection:
    """Return a synchronous :class:`sqlite3.Connection` tuned for performance.

    *Always* called inside a ``try/finally`` or ``with`` block by callers.
    """
    conn = sqlite3.connect(db_path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA cache_size=-32768")   # 32 MB page cache
    return conn


# ---------------------------------------------------------------------------
# Schema – CREATE TABLE IF NOT EXISTS
# ---------------------------------------------------------------------------

_SCHEMA = """
-- ── Source registry ───────────────────────────────────────────────────────

CREATE TABLE IF NOT EXISTS sources (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    id           TEXT NOT NULL UNIQUE,
    name         TEXT NOT NULL,
    url          TEXT NOT NULL UNIQUE,
    description  TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sources_active_created
    ON sources (is_active, created_at);

-- ── Aggregation cache ─────────────────────────────────────────────────────

-- One row per channel of the current snapshot; 'id' keeps insertion order.
CREATE TABLE IF NOT EXISTS aggregated_channels (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    url          TEXT NOT NULL,
    group_title  TEXT,
    logo         TEXT,
    source_name  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS aggregation_metadata (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    last_updated_at TEXT NOT NULL,
    total_channels  INTEGER NOT NULL DEFAULT 0,
    source_stats    TEXT NOT NULL DEFAULT '[]'
);

CREATE INDEX IF NOT EXISTS idx_metadata_updated
    ON aggregation_metadata (last_updated_at);
"""


def init_db(db_path: str) -> None:
    """Create all tables and indexes. Safe to call on every startup (idempotent)."""
    conn = db_connect(db_path)
    try:
        conn.executescript(_SCHEMA)
        conn.commit()
        logger.info(f"Database initialised at {db_path}")
    finally:
        conn.close()
