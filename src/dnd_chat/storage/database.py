"""SQLite persistence for game stores.

Each save is a single named record holding the game store serialized as
JSON (character, both histories, current actions). The default record
name comes from ``StorageSettings.record_name``.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from dnd_chat.core.config import get_settings
from dnd_chat.core.exceptions import StorageError
from dnd_chat.core.logging import get_logger
from dnd_chat.storage.store import GameStore

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class StoreRecord:
    """A persisted game store.

    Attributes:
        name: Record name.
        payload_json: Serialized game store.
        created_at: When the record was first saved.
        updated_at: When the record was last saved.
    """

    name: str
    payload_json: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> StoreRecord:
        """Create from database row."""
        return cls(
            name=row[0],
            payload_json=row[1],
            created_at=datetime.fromisoformat(row[2]),
            updated_at=datetime.fromisoformat(row[3]),
        )

    def get_payload(self) -> dict[str, Any]:
        """Parse the stored JSON payload.

        Raises:
            StorageError: If the payload is not a JSON object.
        """
        try:
            payload = json.loads(self.payload_json)
        except json.JSONDecodeError as exc:
            raise StorageError(
                f"Stored record is not valid JSON: {exc.msg}",
                record_name=self.name,
            ) from exc
        if not isinstance(payload, dict):
            raise StorageError("Stored record is not a JSON object", record_name=self.name)
        return payload


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database of named game-store records."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
        """
        if db_path is None:
            self.db_path = Path(get_settings().storage.database_path)
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS game_records (
                    name TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Record Operations
    # =========================================================================

    @staticmethod
    def _resolve_name(name: str | None) -> str:
        return name or get_settings().storage.record_name

    def save_store(self, store: GameStore, name: str | None = None) -> StoreRecord:
        """Save a game store, replacing any record of the same name.

        Args:
            store: The store to persist.
            name: Record name; defaults to the configured record name.

        Returns:
            The saved record.
        """
        record_name = self._resolve_name(name)
        now = datetime.now()
        payload_json = json.dumps(store.to_record())

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT created_at FROM game_records WHERE name = ?", (record_name,)
            )
            row = cursor.fetchone()
            created_at = datetime.fromisoformat(row[0]) if row else now

            cursor.execute("""
                INSERT OR REPLACE INTO game_records (name, payload_json, created_at, updated_at)
                VALUES (?, ?, ?, ?)
            """, (record_name, payload_json, created_at.isoformat(), now.isoformat()))

        logger.info("Saved game store", record_name=record_name)

        return StoreRecord(
            name=record_name,
            payload_json=payload_json,
            created_at=created_at,
            updated_at=now,
        )

    def get_record(self, name: str | None = None) -> StoreRecord | None:
        """Fetch a raw record by name."""
        record_name = self._resolve_name(name)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT name, payload_json, created_at, updated_at
                FROM game_records WHERE name = ?
            """, (record_name,))
            row = cursor.fetchone()

            if row:
                return StoreRecord.from_row(tuple(row))
            return None

    def load_store(self, name: str | None = None) -> GameStore | None:
        """Load a game store.

        Args:
            name: Record name; defaults to the configured record name.

        Returns:
            The stored game store, or None when no record exists.

        Raises:
            StorageError: If the record cannot be parsed.
        """
        record = self.get_record(name)
        if record is None:
            return None

        payload = record.get_payload()
        try:
            return GameStore.from_record(payload)
        except ValueError as exc:
            raise StorageError(
                f"Stored record does not match the game schema: {exc}",
                record_name=record.name,
            ) from exc

    def delete_store(self, name: str | None = None) -> bool:
        """Delete a record.

        Returns:
            True if deleted, False if not found.
        """
        record_name = self._resolve_name(name)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM game_records WHERE name = ?", (record_name,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted game store", record_name=record_name)

        return deleted

    def list_records(self) -> list[str]:
        """Names of all saved records, most recently updated first."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM game_records ORDER BY updated_at DESC")
            return [row[0] for row in cursor.fetchall()]


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database()

    return _database_instance


def reset_database() -> None:
    """Drop the cached database instance (used after settings change)."""
    global _database_instance
    _database_instance = None


__all__ = [
    "StoreRecord",
    "Database",
    "get_database",
    "reset_database",
]
