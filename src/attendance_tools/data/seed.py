from __future__ import annotations

from pathlib import Path
import sqlite3

import pandas as pd

from attendance_tools.data.repositories import CommunityRepository

COMMUNITY_COLUMNS = ["community_id", "directory_source", "stats_source"]


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame()
    df = pd.read_csv(path, sep=None, engine="python", dtype=str, keep_default_na=False)
    df.columns = [c.strip().lstrip("\ufeff") for c in df.columns]
    return df


def seed_communities_from_csv(con: sqlite3.Connection, path: Path) -> int:
    df = _read_csv(path)
    if df.empty:
        return 0
    missing = [c for c in COMMUNITY_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Community seed requires columns: {', '.join(missing)}")

    repo = CommunityRepository(con)
    seeded = 0
    for row in df.to_dict(orient="records"):
        if not str(row.get("community_id") or "").strip():
            continue
        repo.upsert_community(
            row["community_id"],
            row.get("directory_source"),
            row.get("stats_source"),
            row.get("event_log"),
        )
        seeded += 1
    return seeded
