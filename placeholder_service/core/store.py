from __future__ import annotations

import logging
import sqlite3
import threading
import time
from contextlib import closing, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from placeholder_service.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: bytes
    data: bytes
    content_type: str


class ImageStore:
    """Durable key -> image bytes mapping backed by sqlite.

    Lookups reuse one connection per thread; writes and maintenance open a
    short-lived connection each. WAL mode keeps readers from blocking on
    writers. sqlite still admits one writer at a time, so concurrent puts
    queue on the database lock for the duration of a single insert.
    """

    def __init__(self, db_path: Path, *, timeout_s: float = 30.0) -> None:
        self._db_path = db_path
        self._timeout_s = float(timeout_s)
        self._local = threading.local()
        self._readers: list[sqlite3.Connection] = []
        self._readers_lock = threading.Lock()
        self._generation = 0
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create data dir for {db_path}: {exc}") from exc
        self._init_db()

    @property
    def path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout_s, check_same_thread=False)
        conn.execute("PRAGMA synchronous=FULL")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(self._connect()) as conn:
                with conn:
                    yield conn
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(str(exc)) from exc

    def _init_db(self) -> None:
        with self._session() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS images (
                    key BLOB PRIMARY KEY,
                    content_type TEXT NOT NULL,
                    data BLOB NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

    def _reader(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None and self._local.generation == self._generation:
            return conn
        conn = self._connect()
        with self._readers_lock:
            self._readers.append(conn)
        self._local.conn = conn
        self._local.generation = self._generation
        return conn

    def release_thread_reader(self) -> None:
        """Close the calling thread's lookup connection, if it has one."""
        self._drop_reader()

    def _drop_reader(self) -> None:
        conn = getattr(self._local, "conn", None)
        self._local.conn = None
        if conn is None:
            return
        with self._readers_lock:
            if conn in self._readers:
                self._readers.remove(conn)
        conn.close()

    def close(self) -> None:
        """Close every per-thread reader; later lookups reconnect."""
        with self._readers_lock:
            readers, self._readers = self._readers, []
            self._generation += 1
        for conn in readers:
            try:
                conn.close()
            except sqlite3.Error as exc:
                logger.warning("Closing reader for %s failed: %s", self._db_path, exc)

    def get(self, key: bytes) -> CacheEntry | None:
        try:
            row = self._reader().execute(
                "SELECT content_type, data FROM images WHERE key = ?",
                (key,),
            ).fetchone()
        except (sqlite3.Error, OSError) as exc:
            self._drop_reader()
            raise StorageError(str(exc)) from exc
        if row is None:
            return None
        content_type, data = row
        return CacheEntry(key=key, data=bytes(data), content_type=content_type)

    def put(self, entry: CacheEntry) -> None:
        """Insert or overwrite ``entry``; committed before this returns."""
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO images (key, content_type, data, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (entry.key, entry.content_type, entry.data, time.time()),
            )

    def delete(self, key: bytes) -> bool:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM images WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def clear(self) -> int:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM images")
        logger.info("Cleared %d cached image(s) from %s", cursor.rowcount, self._db_path)
        return cursor.rowcount

    def count(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COUNT(*) FROM images").fetchone()
        return int(row[0])

    def size_bytes(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COALESCE(SUM(LENGTH(data)), 0) FROM images").fetchone()
        return int(row[0])
