"""Source registry — SQLite-backed list of playlist sources."""
from __future__ import annotations

import hmac
import logging
import sqlite3
from typing import TYPE_CHECKING

from app.database import db_connect
from app.models.source import Source, SourceCreate, SourceUpdate

if TYPE_CHECKING:
    from app.services.config_service import ConfigService

logger = logging.getLogger(__name__)

_COLUMNS = "id, name, url, description, is_active, created_at"


class SourceAlreadyExistsError(Exception):
    """A source with the same URL is already registered."""


class SourceNotFoundError(Exception):
    pass


class PasswordNotConfiguredError(Exception):
    pass


def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        description=row["description"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


class SourceService:
    """CRUD over the ``sources`` table, ordered by creation time."""

    def __init__(self, config_service: "ConfigService", db_path: str):
        self.config_service = config_service
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sources(self) -> list[Source]:
        conn = db_connect(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM sources ORDER BY created_at ASC, seq ASC"
            ).fetchall()
            return [_row_to_source(r) for r in rows]
        finally:
            conn.close()

    def list_active_sources(self) -> list[Source]:
        conn = db_connect(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM sources WHERE is_active = 1 "
                "ORDER BY created_at ASC, seq ASC"
            ).fetchall()
            return [_row_to_source(r) for r in rows]
        finally:
            conn.close()

    def get_source(self, source_id: str) -> Source:
        conn = db_connect(self.db_path)
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise SourceNotFoundError(source_id)
        return _row_to_source(row)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_source(self, data: SourceCreate) -> Source:
        source = Source(name=data.name, url=data.url, description=data.description)
        conn = db_connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO sources (id, name, url, description, is_active, created_at) "
                "VALUES (?,?,?,?,?,?)",
                (source.id, source.name, source.url, source.description,
                 int(source.is_active), source.created_at),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise SourceAlreadyExistsError(source.url) from e
        finally:
            conn.close()
        logger.info(f"Added source {source.name} ({source.url})")
        return source

    def update_source(self, source_id: str, data: SourceUpdate) -> Source:
        source = self.get_source(source_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] is not None:
            source.name = changes["name"].strip() or source.name
        if "description" in changes:
            source.description = (changes["description"] or "").strip() or None
        if "is_active" in changes and changes["is_active"] is not None:
            source.is_active = changes["is_active"]

        conn = db_connect(self.db_path)
        try:
            conn.execute(
                "UPDATE sources SET name = ?, description = ?, is_active = ? WHERE id = ?",
                (source.name, source.description, int(source.is_active), source.id),
            )
            conn.commit()
        finally:
            conn.close()
        return source

    def delete_source(self, source_id: str) -> None:
        conn = db_connect(self.db_path)
        try:
            cur = conn.execute("DELETE FROM sources WHERE id = ?", (source_id,))
            conn.commit()
            deleted = cur.rowcount
        finally:
            conn.close()
        if not deleted:
            raise SourceNotFoundError(source_id)
        logger.info(f"Deleted source {source_id}")

    # ------------------------------------------------------------------
    # Password gate for the management surface
    # ------------------------------------------------------------------

    def verify_password(self, password: str) -> bool:
        expected = self.config_service.get_source_manager_password()
        if not expected:
            raise PasswordNotConfiguredError("Source manager password is not configured")
        return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))
