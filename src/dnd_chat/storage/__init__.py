"""Game store and SQLite persistence."""

from dnd_chat.storage.database import Database, StoreRecord, get_database, reset_database
from dnd_chat.storage.store import GameStore

__all__ = ["GameStore", "Database", "StoreRecord", "get_database", "reset_database"]
