from __future__ import annotations

from typing import Any, Iterable, Mapping

from attendance_tools.services.activity_score import parse_int
from attendance_tools.services.attendance_events import PersonCurrentStats
from attendance_tools.services.normalize import (
    clean_text,
    display_name,
    is_blank,
    normalize_key,
    person_key,
)

StatsIndex = Mapping[tuple[str, str, str], PersonCurrentStats]


def has_identity(row: Mapping[str, Any]) -> bool:
    return not (
        is_blank(row.get("person_id"))
        or is_blank(row.get("first_name"))
        or is_blank(row.get("last_name"))
    )


def index_stats_rows(rows: Iterable[Mapping[str, Any]]) -> dict[tuple[str, str, str], PersonCurrentStats]:
    """Map normalized (id, first, last) to current stats; earlier rows win."""
    index: dict[tuple[str, str, str], PersonCurrentStats] = {}
    for row in rows:
        key = person_key(row.get("person_id"), row.get("first_name"), row.get("last_name"))
        if key in index:
            continue
        index[key] = PersonCurrentStats(
            quarter_event_count=parse_int(row.get("quarter_events")),
            activity_score=parse_int(row.get("activity_score")),
        )
    return index


def lookup_stats(index: StatsIndex, person_id: Any, first_name: Any, last_name: Any) -> PersonCurrentStats:
    return index.get(person_key(person_id, first_name, last_name), PersonCurrentStats())


def find_directory_match(
    directory_rows: Iterable[Mapping[str, Any]],
    first_name: Any,
    last_name: Any,
) -> Mapping[str, Any] | None:
    wanted_first = normalize_key(first_name)
    wanted_last = normalize_key(last_name)
    for row in directory_rows:
        if (
            normalize_key(row.get("last_name")) == wanted_last
            and normalize_key(row.get("first_name")) == wanted_first
        ):
            return row
    return None


def match_tracker_to_directory(
    tracker_rows: list[dict[str, Any]],
    directory_rows: list[Mapping[str, Any]],
) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Fill person id and full name for tracker rows found in the directory.

    Only rows carrying both a first and a last name are looked up. Rows that
    are not found lose their id and name cells; the activity level stays.
    """
    updated: list[dict[str, Any]] = []
    counts: dict[str, Any] = {"processed": 0, "found": 0, "not_found": []}
    for row in tracker_rows:
        row = dict(row)
        updated.append(row)
        if is_blank(row.get("last_name")) or is_blank(row.get("first_name")):
            continue
        counts["processed"] += 1
        match = find_directory_match(directory_rows, row.get("first_name"), row.get("last_name"))
        if match is None:
            counts["not_found"].append(display_name(row.get("first_name"), row.get("last_name")))
            for field in ("person_id", "full_name", "last_name", "first_name"):
                row[field] = None
            continue
        row["person_id"] = clean_text(match.get("person_id")) or None
        row["full_name"] = display_name(match.get("first_name"), match.get("last_name"))
        counts["found"] += 1
    return updated, counts


def tracker_rows_from_source(source_rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for row in source_rows:
        if not has_identity(row):
            continue
        rows.append(
            {
                "person_id": clean_text(row.get("person_id")),
                "full_name": display_name(row.get("first_name"), row.get("last_name")),
                "last_name": row.get("last_name"),
                "first_name": row.get("first_name"),
                "activity_level": None,
            }
        )
    return rows
