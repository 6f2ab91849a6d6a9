"""Store module - SQLite database management"""

import logging
import sqlite3
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

__all__ = [
    "SCHEMA_SQL",
    "connect",
    "ensure_schema",
]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS modules (
    name          TEXT PRIMARY KEY,
    status        INTEGER NOT NULL DEFAULT 1,
    updates       INTEGER NOT NULL DEFAULT 0,
    path          TEXT NOT NULL,
    settings      TEXT NOT NULL DEFAULT '{}',
    menu          TEXT NOT NULL DEFAULT '{}',
    version       TEXT NOT NULL,
    created       TEXT NOT NULL,
    updated       TEXT NOT NULL,
    info          TEXT NOT NULL DEFAULT '{}',
    installed_by  TEXT
);
"""


def connect(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open a connection with row factory, creating the parent directory"""
    db_path = Path(db_path)
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create registry tables if they do not exist"""
    conn.executescript(SCHEMA_SQL)
    conn.commit()
