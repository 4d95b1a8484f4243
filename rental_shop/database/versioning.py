# rental_shop/database/versioning.py
from __future__ import annotations

import logging
import sqlite3

from ..constants import TABLE_SCHEMA_VERSION

_log = logging.getLogger(__name__)


def _as_tuple(version: str) -> tuple[int, ...]:
    return tuple(int(p) for p in version.split(".") if p.isdigit())


def get_current_version(conn: sqlite3.Connection) -> str | None:
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}("
        "id INTEGER PRIMARY KEY CHECK (id=1), version TEXT NOT NULL)"
    )
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1").fetchone()
    return row[0] if row else None


def set_current_version(conn: sqlite3.Connection, version: str) -> None:
    get_current_version(conn)  # creates the table on first use
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        "ON CONFLICT(id) DO UPDATE SET version=excluded.version",
        (version,),
    )
    conn.commit()


def stamp_version(conn: sqlite3.Connection, expected: str) -> None:
    """
    Record the schema version the app was built for. A database written by a
    newer release is refused rather than silently downgraded.
    """
    current = get_current_version(conn)
    if current == expected:
        return
    if current is not None and _as_tuple(current) > _as_tuple(expected):
        raise RuntimeError(
            f"Database schema {current} is newer than this application ({expected})."
        )
    _log.info("schema version %s -> %s", current, expected)
    set_current_version(conn, expected)
