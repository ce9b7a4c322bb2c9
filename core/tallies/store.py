"""Tally persistence handle backed by SQLite."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from shared.logging.logger import get_logger

log = get_logger("tallies.store")

DEFAULT_DB_PATH = Path("tallies.db")
MEMORY_DB = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tallies (
        item TEXT PRIMARY KEY,
        score INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS aliases (
        item TEXT PRIMARY KEY,
        group_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS groups (
        group_id INTEGER PRIMARY KEY AUTOINCREMENT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_aliases_group
    ON aliases(group_id)
    """,
)


class StoreInitError(RuntimeError):
    """Raised when the tally database cannot be opened or its schema created."""


class TallyStore:
    """
    Process-wide handle on the tally database.

    - Opened once at startup and held for the process lifetime.
    - Every mutation runs inside `transaction()`, which serializes writers
      with a lock and commits or rolls back as a unit.
    - Pass ":memory:" for an isolated, non-durable store.
    """

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH, *, timeout: float = 5.0) -> None:
        self._db_path = str(db_path)
        self._timeout = timeout
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "TallyStore":
        if self._conn is not None:
            return self

        conn = None
        try:
            if self._db_path != MEMORY_DB:
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self._db_path,
                timeout=self._timeout,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            with conn:
                for stmt in _SCHEMA:
                    conn.execute(stmt)
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise StoreInitError(
                f"Failed to initialize tally database at {self._db_path}: {e}"
            ) from e

        self._conn = conn
        log.info(f"Tally database ready at {self._db_path}")
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        with self._lock:
            self._conn.close()
            self._conn = None
        log.info("Tally database closed")

    def __enter__(self) -> "TallyStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("TallyStore used before open()")
        return self._conn

    @contextmanager
    def reading(self) -> Iterator[sqlite3.Connection]:
        # Shares the writer lock so reads never interleave with a transaction.
        with self._lock:
            yield self.conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block as one atomic unit.

        Nested use (a store method calling another inside its own
        transaction) joins the outer transaction instead of committing early.
        """
        with self._lock:
            conn = self.conn
            if conn.in_transaction:
                yield conn
                return

            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()
