from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

QUARTER_START_MONTHS = (1, 4, 7, 10)


def resolve_timezone(name: str | tzinfo | None) -> tzinfo | None:
    if name is None or isinstance(name, tzinfo):
        return name
    text = name.strip()
    if not text:
        return None
    try:
        return ZoneInfo(text)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f'Unknown time zone "{text}".') from exc


def local_date(reference: date | datetime, tz: str | tzinfo | None = None) -> date:
    """Calendar day of ``reference`` as seen in ``tz``."""
    if isinstance(reference, datetime):
        zone = resolve_timezone(tz)
        if zone is not None and reference.tzinfo is not None:
            reference = reference.astimezone(zone)
        return reference.date()
    return reference


def local_today(tz: str | tzinfo | None = None) -> date:
    zone = resolve_timezone(tz)
    if zone is None:
        return date.today()
    return datetime.now(zone).date()


def quarter_start(day: date) -> date:
    month = max(m for m in QUARTER_START_MONTHS if m <= day.month)
    return date(day.year, month, 1)


def generate_recent_distinct_dates(
    count: int,
    reference: date | datetime,
    tz: str | tzinfo | None = None,
) -> Iterator[date]:
    """Yield up to ``count`` days walking back from ``reference``.

    The walk stops at the first day before the start of the reference
    date's calendar quarter, so the result can be shorter than ``count``.
    """
    if count <= 0:
        return
    start_day = local_date(reference, tz)
    boundary = quarter_start(start_day)
    for offset in range(count):
        event_day = start_day - timedelta(days=offset)
        if event_day < boundary:
            break
        yield event_day


def format_event_date(value: date) -> str:
    return f"{value.month}/{value.day}/{value.year:04d}"
