from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from attendance_tools.services.activity_score import ActivityLevel

EVENT_LABEL_PREFIX = "BASELINE ADJUSTMENT "


@dataclass(frozen=True)
class PersonActivityRequest:
    person_id: str
    full_name: str
    first_name: str
    last_name: str
    activity_level: ActivityLevel


@dataclass(frozen=True)
class PersonCurrentStats:
    quarter_event_count: int = 0
    activity_score: int = 0


@dataclass(frozen=True)
class AttendanceEventRecord:
    person_id: str
    full_name: str
    event_label: str
    first_name: str
    last_name: str
    event_date: date
    logged_at: date


def build_attendance_events(
    person: PersonActivityRequest,
    event_dates: Iterable[date],
    executed_on: date,
) -> list[AttendanceEventRecord]:
    return [
        AttendanceEventRecord(
            person_id=person.person_id,
            full_name=person.full_name,
            event_label=f"{EVENT_LABEL_PREFIX}{counter}",
            first_name=person.first_name,
            last_name=person.last_name,
            event_date=event_date,
            logged_at=executed_on,
        )
        for counter, event_date in enumerate(event_dates, start=1)
    ]
