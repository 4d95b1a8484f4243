# rental_shop/database/repositories/sequences_repo.py
from __future__ import annotations

import sqlite3


class SequencesRepo:
    """
    Durable, monotonically increasing counters used for rental and invoice
    numbers. Values are never reused, even when the rows that consumed them
    are deleted later.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def current(self, name: str) -> int:
        row = self.conn.execute("SELECT value FROM sequences WHERE name=?", (name,)).fetchone()
        return int(row[0]) if row else 0

    def next_value(self, name: str) -> int:
        """
        Reserve and return the next value. Must run inside the caller's write
        transaction so the increment commits (or rolls back) with the rows that
        use it.
        """
        self.conn.execute("INSERT OR IGNORE INTO sequences(name, value) VALUES (?, 0)", (name,))
        self.conn.execute("UPDATE sequences SET value = value + 1 WHERE name=?", (name,))
        return self.current(name)

    def ensure_at_least(self, name: str, value: int) -> None:
        """Move a counter forward to `value` if it is behind (used by snapshot import)."""
        self.conn.execute("INSERT OR IGNORE INTO sequences(name, value) VALUES (?, 0)", (name,))
        self.conn.execute(
            "UPDATE sequences SET value=? WHERE name=? AND value < ?",
            (int(value), name, int(value)),
        )
