"""Local store for offline resources and queued requests.

This module provides:
- LocalStore: SQLite-backed cache of resource snapshots and request queue
- StoreError: Raised for open, transaction and corruption failures
- TransactionAbort: Raised when an operation's combined write is rolled back

Schema:
    resources: one CacheEntry per URI (key/value, no secondary index)
    requests:  PendingRequest rows, AUTOINCREMENT id (FIFO replay order),
               composite index on (url, method)

ACID properties:
    - Atomicity: transaction() wraps BEGIN IMMEDIATE / COMMIT, and any
      failure rolls back both tables
    - Isolation: an RLock serializes access from multiple threads; nested
      transaction() calls join the outer transaction
    - Durability: SQLite WAL mode
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from hyperoffline.client.resource import CacheEntry, PendingRequest

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Local store failure (open, transaction or corruption)."""


class TransactionAbort(StoreError):
    """A cache/queue write could not be committed and was rolled back."""


class LocalStore:
    """SQLite-backed store for cached resources and pending requests."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the store (the database is opened by open()).

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._db_path

    @property
    def is_open(self) -> bool:
        """Check if the database connection is open."""
        return self._conn is not None

    def open(self) -> None:
        """Open the database and create tables if needed.

        Raises:
            StoreError: If the database cannot be opened.
        """
        with self._lock:
            if self._conn is not None:
                return
            try:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(
                    str(self._db_path),
                    check_same_thread=False,
                    isolation_level=None,  # Explicit BEGIN/COMMIT
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                self._create_tables(conn)
            except (sqlite3.Error, OSError) as e:
                raise StoreError(f"Cannot open store at {self._db_path}: {e}") from e
            self._conn = conn
            logger.debug("Opened offline store at %s", self._db_path)

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create database tables if they don't exist."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS resources (
                uri TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                links TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                method TEXT NOT NULL,
                url TEXT NOT NULL,
                data BLOB,
                headers TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_requests_url_method
                ON requests (url, method);
        """)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._depth = 0

    def reset(self) -> None:
        """Delete the database file and recreate an empty store.

        Raises:
            StoreError: If the file cannot be removed or reopened.
        """
        with self._lock:
            self.close()
            try:
                for suffix in ("", "-wal", "-shm"):
                    Path(f"{self._db_path}{suffix}").unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(f"Cannot delete store at {self._db_path}: {e}") from e
            self.open()
            logger.info("Recreated offline store at %s", self._db_path)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[LocalStore]:
        """Run a block of store operations atomically.

        Nested calls join the outermost transaction, which commits or
        rolls back everything.

        Raises:
            StoreError: If the store is closed or SQLite reports an error.
        """
        with self._lock:
            conn = self._conn
            if conn is None:
                raise StoreError("Store is not open")

            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

            self._depth = 1
            try:
                yield self
                conn.execute("COMMIT")
            except BaseException as e:
                with contextlib.suppress(sqlite3.Error):
                    conn.execute("ROLLBACK")
                if isinstance(e, sqlite3.Error):
                    raise StoreError(str(e)) from e
                raise
            finally:
                self._depth = 0

    # === Cached resources ===

    def get(self, uri: str) -> CacheEntry | None:
        """Get the cache entry for a URI."""
        with self.transaction() as store:
            row = store._execute("SELECT * FROM resources WHERE uri = ?", (uri,)).fetchone()
        return CacheEntry.from_row(row) if row else None

    def put(self, uri: str, entry: CacheEntry) -> None:
        """Insert or replace the cache entry for a URI."""
        with self.transaction() as store:
            store._execute(
                "INSERT OR REPLACE INTO resources (uri, data, links) VALUES (?, ?, ?)",
                (uri, json.dumps(entry.data), json.dumps(entry.links)),
            )

    def delete(self, uri: str) -> None:
        """Remove the cache entry for a URI (no error if absent)."""
        with self.transaction() as store:
            store._execute("DELETE FROM resources WHERE uri = ?", (uri,))

    def count_entries(self) -> int:
        """Count cached resources."""
        with self.transaction() as store:
            row = store._execute("SELECT COUNT(*) FROM resources").fetchone()
        return int(row[0])

    def iterate_offline_only(self, page_size: int = 100) -> Iterator[tuple[str, CacheEntry]]:
        """Iterate over cache entries whose URI is not an http(s) address.

        Rows are filtered in SQL and read in pages of `page_size` keys,
        resuming after the last key seen, so the caller may delete the
        current key while iterating. Run inside transaction() to make the
        scan and any deletions atomic.

        Yields:
            (uri, entry) pairs in key order.
        """
        last_uri: str | None = None
        while True:
            with self.transaction() as store:
                rows = store._execute(
                    "SELECT * FROM resources"
                    " WHERE (? IS NULL OR uri > ?) AND uri NOT GLOB 'http://*' AND uri NOT GLOB 'https://*'"
                    " ORDER BY uri LIMIT ?",
                    (last_uri, last_uri, page_size),
                ).fetchall()
            for row in rows:
                yield row["uri"], CacheEntry.from_row(row)
            if len(rows) < page_size:
                return
            last_uri = rows[-1]["uri"]

    # === Pending requests ===

    def enqueue(self, request: PendingRequest) -> int:
        """Append a request to the queue.

        Returns:
            The queue sequence id.

        Raises:
            StoreError: If the request cannot be serialized or written.
        """
        try:
            row = request.to_row()
        except (TypeError, ValueError) as e:
            raise StoreError(f"Cannot queue {request.method.upper()} {request.url}: {e}") from e
        with self.transaction() as store:
            cursor = store._execute(
                "INSERT INTO requests (method, url, data, headers) VALUES (?, ?, ?, ?)",
                row,
            )
        request.id = cursor.lastrowid
        return int(cursor.lastrowid)

    def drain_all(self) -> list[PendingRequest]:
        """Return all queued requests in order and clear the queue."""
        with self.transaction() as store:
            rows = store._execute("SELECT * FROM requests ORDER BY id").fetchall()
            store._execute("DELETE FROM requests")
        return [PendingRequest.from_row(row) for row in rows]

    def list_requests(self) -> list[PendingRequest]:
        """Return all queued requests in order without removing them."""
        with self.transaction() as store:
            rows = store._execute("SELECT * FROM requests ORDER BY id").fetchall()
        return [PendingRequest.from_row(row) for row in rows]

    def find_requests(self, url: str, method: str) -> list[PendingRequest]:
        """Return queued requests for a URL and method, in order."""
        with self.transaction() as store:
            rows = store._execute(
                "SELECT * FROM requests WHERE url = ? AND method = ? ORDER BY id",
                (url, method),
            ).fetchall()
        return [PendingRequest.from_row(row) for row in rows]

    def count_pending(self) -> int:
        """Count queued requests."""
        with self.transaction() as store:
            row = store._execute("SELECT COUNT(*) FROM requests").fetchone()
        return int(row[0])

    def _execute(self, sql: str, params: tuple[object, ...] = ()) -> sqlite3.Cursor:
        if self._conn is None:
            raise StoreError("Store is not open")
        return self._conn.execute(sql, params)
