import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from attendance_tools.data.db import connect, init_db, table_count
from attendance_tools.data.repositories import CommunityRepository, TrackerRepository
from attendance_tools.data import sources
from attendance_tools.data.sources import EVENT_LOG_COLUMNS, SourceUnavailableError
from attendance_tools.services import tracker_operations as ops
from tests.utils import (
    DIRECTORY_HEADER,
    STATS_HEADER,
    directory_line,
    read_csv_rows,
    stats_line,
    write_csv,
)


class TrackerOperationsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.con = connect(self.tmp / "db" / "app.db")
        init_db(self.con)

        self.stats_path = write_csv(
            self.tmp / "North Stats.csv",
            [
                STATS_HEADER,
                stats_line("P1", "Ann", "Lee", "5", "0"),
                stats_line("P2", "Bob", "Ray", "15", "4"),
            ],
        )
        self.directory_path = write_csv(
            self.tmp / "North Directory.csv",
            [
                DIRECTORY_HEADER,
                directory_line("P1", "Lee", "Ann"),
                directory_line("P2", "Ray", "Bob"),
                directory_line("P3", "Day", "Cy"),
            ],
        )
        self.communities = CommunityRepository(self.con)
        self.communities.upsert_community("NORTH", str(self.directory_path), str(self.stats_path))
        self.tracker = TrackerRepository(self.con)
        self.tracker.set_selected_community("NORTH")

    def tearDown(self) -> None:
        self.con.close()
        self._tmp.cleanup()

    def test_requires_selected_community(self) -> None:
        self.tracker.set_selected_community(None)
        with self.assertRaises(ops.TrackerOperationError):
            ops.load_data(self.con)
        self.tracker.set_selected_community("SOUTH")
        with self.assertRaises(ops.TrackerOperationError):
            ops.update_activity_levels(self.con, date(2024, 5, 15))

    def test_missing_stats_location(self) -> None:
        self.communities.upsert_community("EAST", str(self.directory_path), None)
        self.tracker.set_selected_community("EAST")
        with self.assertRaises(ops.TrackerOperationError):
            ops.update_activity_levels(self.con, date(2024, 5, 15))

    def test_unreadable_stats_source(self) -> None:
        self.communities.upsert_community("WEST", None, str(self.tmp / "gone.csv"))
        self.tracker.set_selected_community("WEST")
        with self.assertRaises(SourceUnavailableError):
            ops.update_activity_levels(self.con, date(2024, 5, 15))

    def test_load_data_matches_directory(self) -> None:
        self.tracker.replace_rows(
            [
                {"last_name": "lee", "first_name": "ANN", "activity_level": "Active"},
                {"last_name": "Nobody", "first_name": "Here"},
            ]
        )
        result = ops.load_data(self.con)
        rows = self.tracker.list_rows()
        self.assertEqual(rows[0]["person_id"], "P1")
        self.assertEqual(rows[0]["full_name"], "Ann Lee")
        self.assertIsNone(rows[1]["last_name"])
        self.assertEqual(result["counts"]["not_found"], ["Here Nobody"])
        self.assertIn("Found and data loaded for: 1.", result["message"])

    def test_fetch_names_replaces_tracker(self) -> None:
        self.tracker.replace_rows([{"person_id": "X", "last_name": "Old", "first_name": "Row"}])
        result = ops.fetch_names(self.con, "directory")
        self.assertEqual(result["count"], 3)
        rows = self.tracker.list_rows()
        self.assertEqual([row["person_id"] for row in rows], ["P1", "P2", "P3"])
        self.assertEqual(rows[2]["full_name"], "Cy Day")

        result = ops.fetch_names(self.con, "stats")
        self.assertEqual(result["count"], 2)

    def test_fetch_names_reads_source_once(self) -> None:
        with mock.patch.object(sources, "_read_table", wraps=sources._read_table) as read_table:
            ops.fetch_names(self.con, "directory")
        self.assertEqual(read_table.call_count, 1)

    def test_fetch_names_from_header_only_source_clears(self) -> None:
        write_csv(self.stats_path, [STATS_HEADER])
        self.tracker.replace_rows([{"person_id": "X", "last_name": "Old", "first_name": "Row"}])
        result = ops.fetch_names(self.con, "stats")
        self.assertEqual(result["count"], 0)
        self.assertEqual(table_count(self.con, "tracker_rows"), 0)

    def test_fetch_names_rejects_unknown_source(self) -> None:
        with self.assertRaises(ValueError):
            ops.fetch_names(self.con, "roster")

    def test_update_activity_levels_logs_backfill_events(self) -> None:
        self.tracker.replace_rows(
            [
                {"person_id": "P1", "full_name": "Ann Lee", "last_name": "Lee", "first_name": "Ann", "activity_level": "Active"},
                {"person_id": "P2", "full_name": "Bob Ray", "last_name": "Ray", "first_name": "Bob", "activity_level": "Active"},
                {"person_id": "P3", "full_name": "Cy Day", "last_name": "Day", "first_name": "Cy", "activity_level": "Maybe"},
                {"last_name": "Fox", "first_name": "Dee", "activity_level": "Core"},
            ]
        )
        stats_before = self.stats_path.read_text(encoding="utf-8")

        result = ops.update_activity_levels(self.con, date(2024, 5, 15))

        self.assertEqual(
            result["counts"],
            {"processed": 3, "events_logged": 3, "skipped": 1, "missing_details": 1},
        )
        event_log = self.tmp / "North Stats - Event Attendance.csv"
        self.assertEqual(result["event_log"], str(event_log))
        rows = read_csv_rows(event_log)
        self.assertEqual(rows[0], EVENT_LOG_COLUMNS)
        self.assertEqual([row[10] for row in rows[1:]], ["5/15/2024", "5/14/2024", "5/13/2024"])
        self.assertEqual({row[0] for row in rows[1:]}, {"P1"})
        self.assertEqual(self.stats_path.read_text(encoding="utf-8"), stats_before)
        self.assertIn("Cy Day (ID: P3) - Unknown Level", result["message"])
        self.assertIn("1 record(s) had an activity level set", result["message"])

    def test_narrow_stats_source_keeps_names_and_event_count(self) -> None:
        write_csv(
            self.stats_path,
            [["Person ID", "Full", "First", "Last", "Events"], ["P1", "Ann Lee", "Ann", "Lee", "10"]],
        )
        self.assertEqual(ops.fetch_names(self.con, "stats")["count"], 1)
        rows = self.tracker.list_rows()
        rows[0]["activity_level"] = "Active"
        self.tracker.update_rows(rows)

        result = ops.update_activity_levels(self.con, date(2024, 5, 15))

        self.assertEqual(result["scores"], {"P1": 1})
        self.assertEqual(result["counts"]["events_logged"], 1)
        self.assertEqual([record.event_date for record in result["records"]], [date(2024, 5, 15)])

    def test_update_activity_levels_defaults_to_today_in_zone(self) -> None:
        self.tracker.replace_rows(
            [{"person_id": "P1", "full_name": "Ann Lee", "last_name": "Lee", "first_name": "Ann", "activity_level": "Active"}]
        )
        with mock.patch.object(ops, "local_today", return_value=date(2024, 8, 2)) as today:
            result = ops.update_activity_levels(self.con, tz="UTC")
        today.assert_called_once_with("UTC")
        self.assertEqual(result["scores"], {"P1": 3})
        self.assertEqual(
            [record.event_date for record in result["records"]],
            [date(2024, 8, 2), date(2024, 8, 1), date(2024, 7, 31)],
        )

    def test_update_activity_levels_uses_configured_event_log(self) -> None:
        event_log = self.tmp / "custom events.csv"
        self.communities.upsert_community(
            "NORTH", str(self.directory_path), str(self.stats_path), str(event_log)
        )
        self.tracker.replace_rows(
            [{"person_id": "P1", "full_name": "Ann Lee", "last_name": "Lee", "first_name": "Ann", "activity_level": "inactive"}]
        )
        ops.update_activity_levels(self.con, date(2024, 5, 15))
        self.assertEqual(len(read_csv_rows(event_log)), 2)

    def test_update_activity_levels_without_rows(self) -> None:
        result = ops.update_activity_levels(self.con, date(2024, 5, 15))
        self.assertEqual(result["counts"]["events_logged"], 0)
        self.assertTrue((self.tmp / "North Stats - Event Attendance.csv").exists())

    def test_reset_activity_levels(self) -> None:
        self.tracker.replace_rows(
            [
                {"person_id": "P1", "last_name": "Lee", "first_name": "Ann", "activity_level": "Core"},
                {"person_id": "P2", "last_name": "Ray", "first_name": "Bob"},
                {"person_id": "P9", "last_name": "Zo", "first_name": "Zed", "activity_level": "Active"},
            ]
        )
        result = ops.reset_activity_levels(self.con)
        self.assertEqual(result["levels_cleared"], 2)
        self.assertEqual(result["counts"]["processed"], 3)
        self.assertEqual(result["counts"]["reset"], 2)
        self.assertEqual(result["counts"]["changed"], 1)
        self.assertEqual(result["counts"]["not_found"], ["Zed Zo (ID: P9)"])
        self.assertTrue(all(row["activity_level"] is None for row in self.tracker.list_rows()))
        stats_rows = read_csv_rows(self.stats_path)
        self.assertEqual(stats_rows[2][11], "0")

    def test_reset_without_community_only_clears_levels(self) -> None:
        self.tracker.set_selected_community(None)
        self.tracker.replace_rows([{"person_id": "P1", "last_name": "Lee", "first_name": "Ann", "activity_level": "Core"}])
        result = ops.reset_activity_levels(self.con)
        self.assertEqual(result["levels_cleared"], 1)
        self.assertIsNone(result["counts"])
        self.assertEqual(read_csv_rows(self.stats_path)[2][11], "4")

    def test_clear_tracker(self) -> None:
        self.tracker.replace_rows([{"person_id": "P1", "last_name": "Lee", "first_name": "Ann"}])
        ops.clear_tracker(self.con)
        self.assertIsNone(self.tracker.get_selected_community())
        self.assertEqual(self.tracker.list_rows(), [])


if __name__ == "__main__":
    unittest.main()
