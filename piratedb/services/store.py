# piratedb/services/store.py

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from ..config import logger
from .extractor import TorrentRecord

SCHEMA_SQL = """
CREATE TABLE "Torrents" (
"Id" INTEGER PRIMARY KEY,
"Title" TEXT,
"Category" TEXT,
"Size" INTEGER,
"Seeders" INTEGER,
"Leechers" INTEGER,
"Uploaded" TEXT,
"Uploader" TEXT,
"Files_num" INTEGER,
"Description" TEXT,
"Magnet" TEXT
);
CREATE INDEX "TITLE" ON "Torrents" ("Title");
"""

INSERT_SQL = 'INSERT INTO "Torrents" VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)'


class StoreClosedError(sqlite3.ProgrammingError):
    """An insert arrived after the store was closed."""


class TorrentStore:
    """
    Append-only torrent table. The writer thread is the only caller of
    ``insert``; ``close`` may be reached from both the normal shutdown and
    the interrupt path, and only the first call does anything.
    """

    def __init__(self, conn: sqlite3.Connection, path: str) -> None:
        self.conn = conn
        self.path = path
        self._closed = False
        self._lock = threading.RLock()

    @classmethod
    def open(cls, path: str, fresh: bool) -> TorrentStore:
        """Opens ``path``; with ``fresh`` the file is replaced by an empty schema."""
        db_path = Path(path)
        if fresh:
            db_path.unlink(missing_ok=True)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        if fresh:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
            logger.info(f"[STORE] Created fresh database at '{path}'.")
        else:
            logger.info(f"[STORE] Appending to existing database at '{path}'.")
        return cls(conn, path)

    @property
    def closed(self) -> bool:
        return self._closed

    def insert(self, record: TorrentRecord) -> None:
        with self._lock:
            if self._closed:
                raise StoreClosedError("store is closed")
            self.conn.execute(INSERT_SQL, record.as_row())
            self.conn.commit()

    def count(self) -> int:
        with self._lock:
            return self.conn.execute('SELECT COUNT(*) FROM "Torrents"').fetchone()[0]

    def close(self) -> bool:
        """Returns True for the call that actually closed the connection."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self.conn.close()
        logger.info(f"[STORE] Closed database '{self.path}'.")
        return True
