from __future__ import annotations

import csv
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from attendance_tools.services.attendance_events import AttendanceEventRecord
from attendance_tools.services.event_dates import format_event_date
from attendance_tools.services.normalize import clean_text, person_key

LOGGER = logging.getLogger(__name__)

EVENT_LOG_COLUMNS = [
    "Person ID",
    "Full Name",
    "Event",
    "First Name",
    "Last Name",
    "",
    "",
    "",
    "",
    "",
    "Event Date",
    "",
    "",
    "Update Timestamp",
]

EVENT_LOG_FIELDS = {
    "person_id": 0,
    "full_name": 1,
    "event_label": 2,
    "first_name": 3,
    "last_name": 4,
    "event_date": 10,
    "logged_at": 13,
}


class SourceUnavailableError(RuntimeError):
    pass


@dataclass(frozen=True)
class SourceLayout:
    """0-based column positions of a tabular source."""

    columns: dict[str, int]
    has_header: bool = True

    @property
    def width(self) -> int:
        return max(self.columns.values()) + 1


DIRECTORY_LAYOUT = SourceLayout(columns={"person_id": 0, "last_name": 2, "first_name": 3})

STATS_LAYOUT = SourceLayout(
    columns={
        "person_id": 0,
        "first_name": 2,
        "last_name": 3,
        "quarter_events": 4,
        "activity_score": 11,
    }
)


def _resolve_path(location: str | Path | None, label: str) -> Path:
    text = clean_text(location)
    if not text:
        raise SourceUnavailableError(f"No location configured for the {label} source.")
    path = Path(text).expanduser()
    if not path.is_file():
        raise SourceUnavailableError(f"Could not open the {label} source: {path} does not exist.")
    return path


def _field_count(path: Path) -> int:
    with path.open(encoding="utf-8-sig", newline="") as handle:
        return max((len(row) for row in csv.reader(handle)), default=0)


def _read_table(path: Path, label: str, min_width: int = 0) -> pd.DataFrame:
    """Read a headerless CSV, padding short rows to a common width.

    Rows may have different lengths; every row is kept and missing cells
    read as blank strings.
    """
    try:
        width = _field_count(path)
        if width == 0:
            return pd.DataFrame()
        df = pd.read_csv(
            path,
            header=None,
            names=list(range(max(width, min_width))),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except (OSError, UnicodeDecodeError, csv.Error, pd.errors.ParserError) as exc:
        LOGGER.error("Reading %s source %s failed: %s", label, path, exc)
        raise SourceUnavailableError(f"Could not open the {label} source {path}: {exc}") from exc
    if width < min_width:
        LOGGER.info(
            "%s source %s has %s columns; treating columns up to %s as blank.",
            label,
            path,
            width,
            min_width,
        )
    return df.fillna("")


class TabularSource:
    label = "tabular"

    def __init__(self, location: str | Path | None, layout: SourceLayout) -> None:
        self.path = _resolve_path(location, self.label)
        self.layout = layout

    def read_frame(self) -> pd.DataFrame:
        """The whole source, at least as wide as the layout."""
        return _read_table(self.path, self.label, self.layout.width)

    def records(self, include_header: bool = False) -> list[dict[str, Any]]:
        """All rows as dicts keyed by layout field name."""
        df = self.read_frame()
        if not include_header and self.layout.has_header:
            df = df.iloc[1:]
        rows: list[dict[str, Any]] = []
        for values in df.itertuples(index=False, name=None):
            rows.append({name: values[position] for name, position in self.layout.columns.items()})
        return rows


class DirectorySource(TabularSource):
    label = "Directory"

    def __init__(self, location: str | Path | None, layout: SourceLayout = DIRECTORY_LAYOUT) -> None:
        super().__init__(location, layout)


class StatsSource(TabularSource):
    label = "Attendance Stats"

    def __init__(self, location: str | Path | None, layout: SourceLayout = STATS_LAYOUT) -> None:
        super().__init__(location, layout)

    def reset_scores(self, people: list[tuple[Any, Any, Any]]) -> tuple[int, list[int]]:
        """Set the activity score to 0 for the first row matching each person.

        Returns the number of rows changed and, per requested person, the
        matched row position (-1 when the person is not present).
        """
        df = self.read_frame()
        positions = self.layout.columns
        score_col = positions["activity_score"]
        if df.empty:
            return 0, [-1 for _ in people]

        first_row_by_key: dict[tuple[str, str, str], int] = {}
        for index, values in enumerate(df.itertuples(index=False, name=None)):
            key = person_key(
                values[positions["person_id"]],
                values[positions["first_name"]],
                values[positions["last_name"]],
            )
            first_row_by_key.setdefault(key, index)

        changed = 0
        matches: list[int] = []
        for person_id, first_name, last_name in people:
            index = first_row_by_key.get(person_key(person_id, first_name, last_name), -1)
            matches.append(index)
            if index < 0:
                continue
            current = clean_text(df.iat[index, score_col])
            if current not in ("", "0"):
                df.iat[index, score_col] = "0"
                changed += 1

        if changed:
            df.to_csv(self.path, header=False, index=False)
        return changed, matches


class EventLogSink:
    """Append-only CSV log of attendance events."""

    def __init__(self, location: str | Path) -> None:
        text = clean_text(location)
        if not text:
            raise SourceUnavailableError("No location configured for the event log.")
        self.path = Path(text).expanduser()

    def ensure_initialized(self) -> None:
        if self.path.exists() and self.path.stat().st_size > 0:
            return
        if not self.path.parent.is_dir():
            raise SourceUnavailableError(
                f"Could not create the event log: {self.path.parent} does not exist."
            )
        pd.DataFrame([EVENT_LOG_COLUMNS]).to_csv(self.path, header=False, index=False)

    def append(self, records: list[AttendanceEventRecord]) -> int:
        self.ensure_initialized()
        if not records:
            return 0
        rows = [self._to_row(record) for record in records]
        try:
            pd.DataFrame(rows).to_csv(self.path, mode="a", header=False, index=False)
        except OSError as exc:
            LOGGER.error("Appending to event log %s failed: %s", self.path, exc)
            raise SourceUnavailableError(f"Could not write the event log {self.path}: {exc}") from exc
        return len(rows)

    @staticmethod
    def _to_row(record: AttendanceEventRecord) -> list[str]:
        row = [""] * len(EVENT_LOG_COLUMNS)
        row[EVENT_LOG_FIELDS["person_id"]] = record.person_id
        row[EVENT_LOG_FIELDS["full_name"]] = record.full_name
        row[EVENT_LOG_FIELDS["event_label"]] = record.event_label
        row[EVENT_LOG_FIELDS["first_name"]] = record.first_name
        row[EVENT_LOG_FIELDS["last_name"]] = record.last_name
        row[EVENT_LOG_FIELDS["event_date"]] = format_event_date(record.event_date)
        row[EVENT_LOG_FIELDS["logged_at"]] = format_event_date(record.logged_at)
        return row


def default_event_log_path(stats_location: str | Path) -> Path:
    stats_path = Path(clean_text(stats_location)).expanduser()
    return stats_path.with_name(f"{stats_path.stem} - Event Attendance.csv")
