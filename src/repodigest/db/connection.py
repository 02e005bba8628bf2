"""Connections to the repodigest SQLite database.

One database file is shared by every repodigest process: a long-running
``repodigest watch`` can write commits while ``poll`` or ``add`` run next to
it. Connections therefore use WAL mode (readers never block the writer) and
wait up to ``busy_timeout`` seconds for a competing writer instead of failing
with "database is locked" straight away.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import sqlite_vec

from repodigest.db.migrations import run_migrations

DEFAULT_BUSY_TIMEOUT = 10.0


class Database:
    """A repodigest database file.

    Args:
        db_path:      SQLite file, created on first connect.
        busy_timeout: Seconds a write waits for another connection's lock.
    """

    def __init__(self, db_path: Path | str, busy_timeout: float = DEFAULT_BUSY_TIMEOUT) -> None:
        if busy_timeout < 0:
            raise ValueError(f"busy_timeout must be >= 0, got {busy_timeout}")
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout

    def connect(self) -> sqlite3.Connection:
        """Open a connection with sqlite-vec loaded. The schema is not touched."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout * 1000)}")
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        # NORMAL is durable across application crashes in WAL mode.
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    def open(self) -> sqlite3.Connection:
        """Connect and apply pending migrations."""
        conn = self.connect()
        try:
            run_migrations(conn)
        except sqlite3.Error:
            conn.close()
            raise
        return conn
