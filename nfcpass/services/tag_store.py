"""
Tag Store for NFCPass.

Saved tags are kept as one JSON array under a single well-known key in a local
key-value store. The store here is a two-column SQLite table; the repository
interface (load / save) is what the rest of the application depends on.
"""

import json
import sqlite3
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from ..models.tag import Tag

logger = logging.getLogger(__name__)


class TagStoreError(Exception):
    """Raised when saved tags cannot be read from or written to the store."""
    pass


class TagRepository(ABC):
    """Abstract Base Class for saved-tag repositories."""

    @abstractmethod
    def load(self) -> List[Tag]:
        """Returns all saved tags in their stored order."""
        pass

    @abstractmethod
    def save(self, tags: List[Tag]) -> None:
        """Replaces the saved tags with ``tags``."""
        pass

    def close(self) -> None:
        pass


def tags_to_json(tags: List[Tag]) -> str:
    return json.dumps([tag.to_dict() for tag in tags])


def tags_from_json(value: str) -> List[Tag]:
    """
    Parses the stored JSON array. Entries that fail to parse are skipped and
    logged; a value that is not a JSON array raises TagStoreError.
    """
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise TagStoreError(f"Saved tags are not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise TagStoreError(f"Saved tags must be a JSON array, got {type(data).__name__}.")

    tags = []
    for index, item in enumerate(data):
        try:
            tags.append(Tag.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping saved tag #{index}: {e}")
    return tags


class SQLiteTagRepository(TagRepository):
    """Stores the tag list as JSON under one key of a SQLite key-value table."""

    TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Union[str, Path], key: str = "savedTags"):
        self.db_path = str(db_path)
        self.key = key
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        if self.conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
                self.conn.row_factory = sqlite3.Row
                with self.conn:
                    self.conn.execute(self.TABLE_SQL)
                logger.info(f"Connected to tag store: {self.db_path}")
            except (sqlite3.Error, OSError) as e:
                self.conn = None
                logger.error(f"Tag store connection error to {self.db_path}: {e}")
                raise TagStoreError(f"Cannot open tag store {self.db_path}: {e}") from e
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Disconnected from tag store.")

    def get_value(self, key: str) -> Optional[str]:
        conn = self.connect()
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Tag store read error for key '{key}': {e}")
            raise TagStoreError(f"Cannot read '{key}': {e}") from e
        return row['value'] if row else None

    def set_value(self, key: str, value: str) -> None:
        conn = self.connect()
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                    (key, value),
                )
        except sqlite3.Error as e:
            logger.error(f"Tag store write error for key '{key}': {e}")
            raise TagStoreError(f"Cannot write '{key}': {e}") from e

    def load(self) -> List[Tag]:
        value = self.get_value(self.key)
        if value is None:
            return []
        tags = tags_from_json(value)
        logger.debug(f"Loaded {len(tags)} saved tags.")
        return tags

    def save(self, tags: List[Tag]) -> None:
        self.set_value(self.key, tags_to_json(tags))
        logger.debug(f"Saved {len(tags)} tags.")
