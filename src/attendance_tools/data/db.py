from __future__ import annotations

import os
from pathlib import Path
import sqlite3

SCHEMA_VERSION = 1

SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS communities (
  community_id TEXT PRIMARY KEY,
  directory_source TEXT,
  stats_source TEXT,
  event_log TEXT,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tracker_state (
  key TEXT PRIMARY KEY,
  value TEXT
);

CREATE TABLE IF NOT EXISTS tracker_rows (
  row_no INTEGER PRIMARY KEY,
  person_id TEXT,
  full_name TEXT,
  last_name TEXT,
  first_name TEXT,
  activity_level TEXT
);
"""


def default_db_path() -> Path:
    data_dir = Path(os.getenv("ATTENDANCE_TOOLS_DATA_DIR", "./data"))
    return Path(os.getenv("ATTENDANCE_TOOLS_DB_PATH", data_dir / "app.db"))


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path.as_posix())
    con.row_factory = sqlite3.Row
    con.execute("PRAGMA foreign_keys=ON;")
    return con


def _get_user_version(con: sqlite3.Connection) -> int:
    row = con.execute("PRAGMA user_version;").fetchone()
    return int(row[0]) if row else 0


def _set_user_version(con: sqlite3.Connection, version: int) -> None:
    con.execute(f"PRAGMA user_version = {version};")


def init_db(con: sqlite3.Connection) -> None:
    con.executescript(SCHEMA_SQL)
    if _get_user_version(con) < SCHEMA_VERSION:
        _set_user_version(con, SCHEMA_VERSION)
    con.commit()


def table_count(con: sqlite3.Connection, table: str) -> int:
    cur = con.execute(f"SELECT COUNT(1) AS n FROM {table}")
    return int(cur.fetchone()["n"])
