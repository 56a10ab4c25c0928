"""SQLite connection layer."""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

# Messages sqlite3 raises when a statement names a table or column that is
# not there yet. Anything else is a real failure and must propagate.
_SCHEMA_MISMATCH_RE = re.compile(
    r"no such table|no such column|has no column named", re.IGNORECASE
)


def is_schema_mismatch(exc: BaseException) -> bool:
    """Return True if *exc* reports a missing table or column."""
    return isinstance(exc, sqlite3.OperationalError) and bool(
        _SCHEMA_MISMATCH_RE.search(str(exc))
    )


class Database:
    """A SQLite database file. Each unit of work opens its own connection."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        journal_mode: str = "WAL",
        timeout: float = 5.0,
    ) -> None:
        """Store the database path. Call connect() to open a connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
            journal_mode: Value for ``PRAGMA journal_mode``.
            timeout: Seconds to wait on a locked database.
        """
        self.db_path = Path(db_path)
        self.journal_mode = journal_mode
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        """Open a connection with the row factory and pragmas applied."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA journal_mode = {self.journal_mode}")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a fresh connection and close it when the block exits."""
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    def __repr__(self) -> str:
        return f"Database({str(self.db_path)!r})"
