from __future__ import annotations

import argparse
from datetime import date
import logging
import os
from pathlib import Path
import sqlite3
import sys

import pandas as pd

from attendance_tools.data.db import connect, default_db_path, init_db
from attendance_tools.data.repositories import CommunityRepository, TrackerRepository
from attendance_tools.data.seed import seed_communities_from_csv
from attendance_tools.data.sources import SourceUnavailableError
from attendance_tools.services import tracker_operations as ops
from attendance_tools.services.event_dates import resolve_timezone

LOGGER = logging.getLogger(__name__)

IMPORT_COLUMNS = ["last_name", "first_name"]


def _parse_today(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Invalid --today date format (YYYY-MM-DD).") from exc


def _get_db_connection() -> sqlite3.Connection:
    con = connect(default_db_path())
    init_db(con)
    return con


def _import_rows(con: sqlite3.Connection, path: Path) -> int:
    df = pd.read_csv(path, sep=None, engine="python", dtype=str, keep_default_na=False)
    df.columns = [c.strip().lstrip("\ufeff").lower().replace(" ", "_") for c in df.columns]
    missing = [c for c in IMPORT_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Tracker import requires columns: {', '.join(missing)}")
    return TrackerRepository(con).replace_rows(df.to_dict(orient="records"))


def _show(con: sqlite3.Connection) -> None:
    tracker = TrackerRepository(con)
    print(f"Community ID: {tracker.get_selected_community() or '(none)'}")
    rows = tracker.list_rows()
    if not rows:
        print("No tracker rows.")
        return
    print(pd.DataFrame(rows).fillna("").to_string(index=False))


def _list_communities(con: sqlite3.Connection) -> None:
    communities = CommunityRepository(con).list_communities()
    if not communities:
        print("No communities registered.")
        return
    df = pd.DataFrame(communities)[["community_id", "directory_source", "stats_source", "event_log"]]
    print(df.fillna("").to_string(index=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Community attendance tracker tools.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("communities", help="List registered communities.")

    add = sub.add_parser("add-community", help="Register or update a community.")
    add.add_argument("community_id")
    add.add_argument("--directory", help="Directory CSV location.")
    add.add_argument("--stats", help="Attendance stats CSV location.")
    add.add_argument("--event-log", help="Event attendance CSV location.")

    seed = sub.add_parser("seed-communities", help="Import communities from a CSV file.")
    seed.add_argument("path", type=Path)

    select = sub.add_parser("select", help="Select the community the tracker works on.")
    select.add_argument("community_id")

    rows = sub.add_parser("import-rows", help="Replace tracker rows from a CSV file.")
    rows.add_argument("path", type=Path)

    sub.add_parser("show", help="Print the tracker.")
    sub.add_parser("load-data", help="Fill person IDs from the community directory.")
    sub.add_parser("names-from-stats", help="Load every person from the attendance stats.")
    sub.add_parser("names-from-directory", help="Load every person from the directory.")

    update = sub.add_parser("update-activity", help="Log backfill events for activity levels.")
    update.add_argument("--today", help="Override today date (YYYY-MM-DD).")
    update.add_argument(
        "--timezone",
        default=os.getenv("ATTENDANCE_TOOLS_TIMEZONE"),
        help="IANA time zone for day boundaries.",
    )

    sub.add_parser("clear", help="Clear the community and every tracker row.")
    sub.add_parser("reset-activity", help="Clear activity levels and reset stats scores.")
    return parser


def run(args: argparse.Namespace, con: sqlite3.Connection) -> str | None:
    if args.command == "communities":
        _list_communities(con)
        return None
    if args.command == "add-community":
        CommunityRepository(con).upsert_community(
            args.community_id, args.directory, args.stats, args.event_log
        )
        return f'Community "{args.community_id}" saved.'
    if args.command == "seed-communities":
        return f"Imported {seed_communities_from_csv(con, args.path)} communities."
    if args.command == "select":
        TrackerRepository(con).set_selected_community(args.community_id)
        return f'Selected community "{args.community_id}".'
    if args.command == "import-rows":
        return f"Imported {_import_rows(con, args.path)} tracker rows."
    if args.command == "show":
        _show(con)
        return None
    if args.command == "load-data":
        return ops.load_data(con)["message"]
    if args.command == "names-from-stats":
        return ops.fetch_names(con, "stats")["message"]
    if args.command == "names-from-directory":
        return ops.fetch_names(con, "directory")["message"]
    if args.command == "update-activity":
        tz = resolve_timezone(args.timezone)
        result = ops.update_activity_levels(con, _parse_today(args.today), tz)
        LOGGER.info("Summary: %s", result["counts"])
        return result["message"]
    if args.command == "clear":
        return ops.clear_tracker(con)["message"]
    if args.command == "reset-activity":
        return ops.reset_activity_levels(con)["message"]
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = build_parser().parse_args(argv)
    con = _get_db_connection()
    try:
        message = run(args, con)
    except (ops.TrackerOperationError, SourceUnavailableError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1
    finally:
        con.close()
    if message:
        print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
