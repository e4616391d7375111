from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
import logging
from typing import Any, Iterable, Mapping

from attendance_tools.services.activity_score import (
    UnknownActivityLevel,
    parse_activity_level,
    resolve_activity_score,
)
from attendance_tools.services.attendance_events import (
    AttendanceEventRecord,
    PersonActivityRequest,
    build_attendance_events,
)
from attendance_tools.services.event_dates import generate_recent_distinct_dates, local_date
from attendance_tools.services.identity import StatsIndex, has_identity, lookup_stats
from attendance_tools.services.normalize import clean_text, is_blank

LOGGER = logging.getLogger(__name__)


@dataclass
class ActivityUpdatePlan:
    executed_on: date
    records: list[AttendanceEventRecord] = field(default_factory=list)
    processed: int = 0
    missing_details: int = 0
    skipped: list[str] = field(default_factory=list)
    scores: dict[str, int] = field(default_factory=dict)

    def counts(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "events_logged": len(self.records),
            "skipped": len(self.skipped),
            "missing_details": self.missing_details,
        }


def plan_activity_updates(
    tracker_rows: Iterable[Mapping[str, Any]],
    stats_index: StatsIndex,
    reference: date | datetime,
    tz: str | tzinfo | None = None,
) -> ActivityUpdatePlan:
    """Resolve new scores and the backfill events for every tracker row.

    Rows without an activity level are ignored. Rows with a level but no
    complete identity are only counted. Unknown levels are recorded in
    ``skipped`` and the pass continues.
    """
    executed_on = local_date(reference, tz)
    plan = ActivityUpdatePlan(executed_on=executed_on)

    for row in tracker_rows:
        level_value = row.get("activity_level")
        if is_blank(level_value):
            continue
        if not has_identity(row):
            plan.missing_details += 1
            continue

        plan.processed += 1
        person_id = clean_text(row.get("person_id"))
        first_name = clean_text(row.get("first_name"))
        last_name = clean_text(row.get("last_name"))
        try:
            level = parse_activity_level(level_value)
        except UnknownActivityLevel:
            LOGGER.warning(
                'Unknown activity level "%s" for %s %s.', level_value, first_name, last_name
            )
            plan.skipped.append(f"{first_name} {last_name} (ID: {person_id}) - Unknown Level")
            continue

        stats = lookup_stats(stats_index, person_id, first_name, last_name)
        new_score = resolve_activity_score(level, stats.quarter_event_count, stats.activity_score)
        plan.scores[person_id] = new_score
        if new_score <= 0:
            continue

        person = PersonActivityRequest(
            person_id=person_id,
            full_name=clean_text(row.get("full_name")),
            first_name=first_name,
            last_name=last_name,
            activity_level=level,
        )
        event_dates = generate_recent_distinct_dates(new_score, reference, tz)
        plan.records.extend(build_attendance_events(person, event_dates, executed_on))

    return plan
