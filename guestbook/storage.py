from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import BoundedSemaphore
from typing import Iterator

from .errors import StoreError, StoreUnavailableError
from .models import Message

logger = logging.getLogger(__name__)

# Fixed-width UTC timestamps sort lexicographically in insertion order.
_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')"


class SQLiteStore:
    def __init__(self, db_path: str = "guestbook.db", pool_size: int = 10) -> None:
        self.db_path = db_path
        self.pool_size = pool_size
        self._slots = BoundedSemaphore(pool_size)

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Unable to open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with self._slots:
            conn = self._open()
            try:
                with conn:
                    yield conn
            except sqlite3.Error as exc:
                raise StoreError(str(exc)) from exc
            finally:
                conn.close()

    def initialize(self) -> None:
        """Create the database file's directory and the messages table."""
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(f"Unable to create database directory for {self.db_path}: {exc}") from exc
        logger.info("Database '%s' ensured to exist.", self.db_path)

        with self._connect() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content TEXT NOT NULL CHECK (length(trim(content)) > 0),
                    created_at TEXT NOT NULL DEFAULT ({_NOW_SQL})
                )
                """
            )
        logger.info("Table 'messages' checked/created in database '%s'.", self.db_path)

    @staticmethod
    def _to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def insert(self, content: str) -> Message:
        with self._connect() as conn:
            cursor = conn.execute("INSERT INTO messages (content) VALUES (?)", (content.strip(),))
            row = conn.execute(
                "SELECT id, content, created_at FROM messages WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        if row is None:
            raise StoreError(f"Inserted message {cursor.lastrowid} could not be read back")
        return self._to_message(row)

    def get(self, message_id: int) -> Message | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, content, created_at FROM messages WHERE id = ?", (message_id,)
            ).fetchone()
        return self._to_message(row) if row else None

    def list_all(self) -> list[Message]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, content, created_at FROM messages ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [self._to_message(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM messages").fetchone()
        return int(row["total"])
