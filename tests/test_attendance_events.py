import sys
import unittest
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from attendance_tools.services.activity_score import ActivityLevel
from attendance_tools.services.attendance_events import (
    PersonActivityRequest,
    build_attendance_events,
)


PERSON = PersonActivityRequest(
    person_id="P1",
    full_name="Ann Lee",
    first_name="Ann",
    last_name="Lee",
    activity_level=ActivityLevel.ACTIVE,
)


class BuildAttendanceEventsTests(unittest.TestCase):
    def test_one_record_per_date_in_order(self) -> None:
        dates = [date(2024, 5, 15), date(2024, 5, 14), date(2024, 5, 13)]
        records = build_attendance_events(PERSON, dates, date(2024, 5, 15))
        self.assertEqual([r.event_date for r in records], dates)
        self.assertEqual(
            [r.event_label for r in records],
            ["BASELINE ADJUSTMENT 1", "BASELINE ADJUSTMENT 2", "BASELINE ADJUSTMENT 3"],
        )
        self.assertEqual({r.logged_at for r in records}, {date(2024, 5, 15)})
        self.assertTrue(all(r.person_id == "P1" and r.full_name == "Ann Lee" for r in records))

    def test_accepts_lazy_dates(self) -> None:
        records = build_attendance_events(PERSON, iter([date(2024, 1, 2)]), date(2024, 1, 3))
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].logged_at, date(2024, 1, 3))

    def test_empty_dates(self) -> None:
        self.assertEqual(build_attendance_events(PERSON, [], date(2024, 5, 15)), [])

    def test_identical_inputs_give_identical_records(self) -> None:
        dates = [date(2024, 5, 15), date(2024, 5, 14)]
        first = build_attendance_events(PERSON, dates, date(2024, 5, 15))
        second = build_attendance_events(PERSON, dates, date(2024, 5, 15))
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
