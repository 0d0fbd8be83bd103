"""Archive database connection: SQLite with the sqlite-vec extension loaded."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

# Seconds a writer waits for another connection's transaction to finish.
DEFAULT_BUSY_TIMEOUT = 30.0


class Database:
    """One archive file holding every collection and its vec tables.

    Each ``connect()`` returns a new connection bound to the calling thread.
    Concurrent writers open one connection each; WAL mode plus the busy
    timeout orders their transactions.
    """

    def __init__(self, db_path: Path | str, busy_timeout: float = DEFAULT_BUSY_TIMEOUT) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Archive file (created, with its parent directory, if missing).
            busy_timeout: Seconds to wait on a locked database before failing.
        """
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection with sqlite-vec loaded, foreign keys on and WAL."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
