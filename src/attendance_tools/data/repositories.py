from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import sqlite3
from typing import Any

from attendance_tools.services.normalize import clean_text

TRACKER_FIELDS = ("person_id", "full_name", "last_name", "first_name", "activity_level")

SELECTED_COMMUNITY_KEY = "selected_community_id"


@dataclass(frozen=True)
class CommunitySources:
    community_id: str
    directory_source: str | None
    stats_source: str | None
    event_log: str | None


def _clean_optional(value: Any) -> str | None:
    text = clean_text(value)
    return text or None


class CommunityRepository:
    def __init__(self, con: sqlite3.Connection) -> None:
        self.con = con

    def list_communities(self) -> list[dict[str, Any]]:
        cur = self.con.execute(
            """
            SELECT community_id, directory_source, stats_source, event_log, created_at, updated_at
            FROM communities
            ORDER BY community_id ASC
            """
        )
        return [dict(row) for row in cur.fetchall()]

    def get_sources(self, community_id: Any) -> CommunitySources | None:
        key = clean_text(community_id)
        if not key:
            return None
        row = self.con.execute(
            """
            SELECT community_id, directory_source, stats_source, event_log
            FROM communities
            WHERE community_id = ?
            """,
            (key,),
        ).fetchone()
        if row is None:
            return None
        return CommunitySources(
            community_id=row["community_id"],
            directory_source=row["directory_source"],
            stats_source=row["stats_source"],
            event_log=row["event_log"],
        )

    def upsert_community(
        self,
        community_id: str,
        directory_source: str | None,
        stats_source: str | None,
        event_log: str | None = None,
    ) -> None:
        key = clean_text(community_id)
        if not key:
            raise ValueError("Community ID is required.")
        now = datetime.now(timezone.utc).isoformat()
        self.con.execute(
            """
            INSERT INTO communities (
              community_id, directory_source, stats_source, event_log, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(community_id) DO UPDATE SET
              directory_source = excluded.directory_source,
              stats_source = excluded.stats_source,
              event_log = excluded.event_log,
              updated_at = excluded.updated_at
            """,
            (
                key,
                _clean_optional(directory_source),
                _clean_optional(stats_source),
                _clean_optional(event_log),
                now,
                now,
            ),
        )
        self.con.commit()

    def delete_community(self, community_id: str) -> None:
        self.con.execute("DELETE FROM communities WHERE community_id = ?", (community_id,))
        self.con.commit()


class TrackerRepository:
    def __init__(self, con: sqlite3.Connection) -> None:
        self.con = con

    def get_selected_community(self) -> str | None:
        row = self.con.execute(
            "SELECT value FROM tracker_state WHERE key = ?",
            (SELECTED_COMMUNITY_KEY,),
        ).fetchone()
        if row is None:
            return None
        return _clean_optional(row["value"])

    def set_selected_community(self, community_id: str | None) -> None:
        self.con.execute(
            """
            INSERT INTO tracker_state (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (SELECTED_COMMUNITY_KEY, _clean_optional(community_id)),
        )
        self.con.commit()

    def list_rows(self) -> list[dict[str, Any]]:
        cur = self.con.execute(
            """
            SELECT row_no, person_id, full_name, last_name, first_name, activity_level
            FROM tracker_rows
            ORDER BY row_no ASC
            """
        )
        return [dict(row) for row in cur.fetchall()]

    def replace_rows(self, rows: list[dict[str, Any]]) -> int:
        """Replace every tracker row, numbering them in list order."""
        payload = [
            (index + 1, *(_clean_optional(row.get(field)) for field in TRACKER_FIELDS))
            for index, row in enumerate(rows)
        ]
        self.con.execute("DELETE FROM tracker_rows")
        if payload:
            self.con.executemany(
                """
                INSERT INTO tracker_rows (
                  row_no, person_id, full_name, last_name, first_name, activity_level
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                payload,
            )
        self.con.commit()
        return len(payload)

    def update_rows(self, rows: list[dict[str, Any]]) -> None:
        payload = [
            (*(_clean_optional(row.get(field)) for field in TRACKER_FIELDS), row["row_no"])
            for row in rows
        ]
        self.con.executemany(
            """
            UPDATE tracker_rows
            SET person_id = ?, full_name = ?, last_name = ?, first_name = ?, activity_level = ?
            WHERE row_no = ?
            """,
            payload,
        )
        self.con.commit()

    def clear_rows(self) -> None:
        self.con.execute("DELETE FROM tracker_rows")
        self.con.commit()

    def clear_activity_levels(self) -> int:
        row = self.con.execute(
            """
            SELECT COUNT(1) AS n
            FROM tracker_rows
            WHERE TRIM(COALESCE(activity_level, '')) != ''
            """
        ).fetchone()
        cleared = int(row["n"]) if row else 0
        self.con.execute("UPDATE tracker_rows SET activity_level = NULL")
        self.con.commit()
        return cleared
