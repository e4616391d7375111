from __future__ import annotations

from datetime import date, datetime, tzinfo
import logging
import sqlite3
from typing import Any

from attendance_tools.data.repositories import (
    CommunityRepository,
    CommunitySources,
    TrackerRepository,
)
from attendance_tools.data.sources import (
    DirectorySource,
    EventLogSink,
    StatsSource,
    TabularSource,
    default_event_log_path,
)
from attendance_tools.services.activity_update import plan_activity_updates
from attendance_tools.services.event_dates import local_today
from attendance_tools.services.identity import (
    has_identity,
    index_stats_rows,
    match_tracker_to_directory,
    tracker_rows_from_source,
)
from attendance_tools.services.normalize import display_name
from attendance_tools.services.reports import (
    build_activity_update_message,
    build_fetch_names_message,
    build_load_data_message,
    build_reset_message,
)

LOGGER = logging.getLogger(__name__)

NAME_SOURCES = {
    "stats": ("Attendance Stats", "stats_source", StatsSource),
    "directory": ("Directory", "directory_source", DirectorySource),
}


class TrackerOperationError(RuntimeError):
    pass


def _selected_community(con: sqlite3.Connection) -> CommunitySources:
    community_id = TrackerRepository(con).get_selected_community()
    if not community_id:
        raise TrackerOperationError("Please select a Community ID first.")
    sources = CommunityRepository(con).get_sources(community_id)
    if sources is None:
        raise TrackerOperationError(f'Community ID "{community_id}" not found in the Settings.')
    return sources


def _required_location(sources: CommunitySources, field: str, label: str) -> str:
    location = getattr(sources, field)
    if not location:
        raise TrackerOperationError(
            f'Location of the {label} for community "{sources.community_id}" is missing in Settings.'
        )
    return location


def load_data(con: sqlite3.Connection) -> dict[str, Any]:
    """Resolve tracker names against the community directory."""
    sources = _selected_community(con)
    directory = DirectorySource(_required_location(sources, "directory_source", "Directory"))
    directory_rows = directory.records(include_header=True)

    tracker = TrackerRepository(con)
    updated, counts = match_tracker_to_directory(tracker.list_rows(), directory_rows)
    if updated:
        tracker.update_rows(updated)
    LOGGER.info(
        "Load data for %s: %s processed, %s found, %s not found.",
        sources.community_id,
        counts["processed"],
        counts["found"],
        len(counts["not_found"]),
    )
    return {"counts": counts, "message": build_load_data_message(counts)}


def fetch_names(con: sqlite3.Connection, source_type: str) -> dict[str, Any]:
    """Replace the tracker rows with every named person of a community source."""
    if source_type not in NAME_SOURCES:
        raise ValueError(f"Invalid source type for fetching names: {source_type}")
    label, field, source_cls = NAME_SOURCES[source_type]
    sources = _selected_community(con)
    source: TabularSource = source_cls(_required_location(sources, field, label))

    tracker = TrackerRepository(con)
    source_rows = source.records()
    if not source_rows:
        tracker.clear_rows()
        return {
            "count": 0,
            "message": (
                f"No data (or only a header row) found in the {label} source "
                f"for {sources.community_id}."
            ),
        }

    rows = tracker_rows_from_source(source_rows)
    count = tracker.replace_rows(rows)
    LOGGER.info("Fetched %s names from %s for %s.", count, label, sources.community_id)
    return {"count": count, "message": build_fetch_names_message(count, label)}


def update_activity_levels(
    con: sqlite3.Connection,
    reference: date | datetime | None = None,
    tz: str | tzinfo | None = None,
) -> dict[str, Any]:
    """Log backfill attendance events for every tracker row with a level.

    The attendance stats are read, never written.
    """
    sources = _selected_community(con)
    stats_location = _required_location(sources, "stats_source", "Attendance Stats")
    stats = StatsSource(stats_location)
    sink = EventLogSink(sources.event_log or default_event_log_path(stats_location))
    sink.ensure_initialized()

    rows = TrackerRepository(con).list_rows()
    if not rows:
        return {
            "counts": {"processed": 0, "events_logged": 0, "skipped": 0, "missing_details": 0},
            "records": [],
            "skipped": [],
            "message": "No data rows to process in the Update Attendance Tracker.",
        }

    stats_index = index_stats_rows(stats.records(include_header=True))
    plan = plan_activity_updates(rows, stats_index, reference or local_today(tz), tz)
    sink.append(plan.records)

    counts = plan.counts()
    LOGGER.info("Activity update for %s: %s", sources.community_id, counts)
    return {
        "counts": counts,
        "records": plan.records,
        "scores": plan.scores,
        "skipped": plan.skipped,
        "event_log": str(sink.path),
        "message": build_activity_update_message(counts, plan.skipped),
    }


def clear_tracker(con: sqlite3.Connection) -> dict[str, Any]:
    tracker = TrackerRepository(con)
    tracker.set_selected_community(None)
    tracker.clear_rows()
    return {
        "message": "Community ID and all names/data have been cleared from the Update Attendance Tracker."
    }


def reset_activity_levels(con: sqlite3.Connection) -> dict[str, Any]:
    """Clear tracker activity levels and zero the matching stats scores."""
    tracker = TrackerRepository(con)
    levels_cleared = tracker.clear_activity_levels()
    community_id = tracker.get_selected_community()
    if not community_id:
        return {
            "levels_cleared": levels_cleared,
            "counts": None,
            "message": build_reset_message(levels_cleared, None, None),
        }

    sources = _selected_community(con)
    stats = StatsSource(_required_location(sources, "stats_source", "Attendance Stats"))
    people = [row for row in tracker.list_rows() if has_identity(row)]
    changed, matches = stats.reset_scores(
        [(row["person_id"], row["first_name"], row["last_name"]) for row in people]
    )

    not_found = [
        f"{display_name(row['first_name'], row['last_name'])} (ID: {row['person_id']})"
        for row, index in zip(people, matches)
        if index < 0
    ]
    counts = {
        "processed": len(people),
        "reset": len(people) - len(not_found),
        "changed": changed,
        "not_found": not_found,
    }
    LOGGER.info(
        "Reset activity scores for %s: %s rows changed, %s not found.",
        community_id,
        changed,
        len(not_found),
    )
    return {
        "levels_cleared": levels_cleared,
        "counts": counts,
        "message": build_reset_message(levels_cleared, community_id, counts),
    }
