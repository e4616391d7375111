from __future__ import annotations

from typing import Any


def build_load_data_message(counts: dict[str, Any]) -> str:
    processed = counts.get("processed", 0)
    found = counts.get("found", 0)
    not_found = counts.get("not_found") or []
    if not processed:
        return (
            "No names with both First and Last Name were found to process "
            'in the "Update Attendance Tracker".'
        )

    lines = [
        "Load Data Complete.",
        f"Attempted to process {processed} names (where both First and Last Name were provided).",
        f"Found and data loaded for: {found}.",
    ]
    if not_found:
        lines.append(f"Not Found in Directory (and cleared from the tracker): {len(not_found)}.")
        lines.append(f"Details of not found (and cleared): {', '.join(not_found)}.")
    elif found == processed:
        lines.append("All processed names were found in the directory.")
    return "\n".join(lines)


def build_activity_update_message(counts: dict[str, int], skipped: list[str]) -> str:
    lines = ["Log Event Attendance - Results:"]
    if counts.get("processed"):
        lines.append(f"Attempted to process {counts['processed']} records from the tracker.")
        lines.append(f"- Logged to the event log: {counts.get('events_logged', 0)} entries.")
        lines.append("(The attendance stats were not modified).")
        if skipped:
            lines.append(
                f"Skipped or failed (e.g., unknown activity level): {len(skipped)} records."
            )
            lines.append(f"   Details: {'; '.join(skipped)}")
    else:
        lines.append(
            "No records in the tracker had sufficient details "
            "(ID, Name, Activity Level) to process."
        )
    missing = counts.get("missing_details", 0)
    if missing:
        lines.append(
            f"{missing} record(s) had an activity level set but were missing ID, "
            "First Name, or Last Name, and were skipped."
        )
    return "\n".join(lines)


def build_fetch_names_message(count: int, source_label: str) -> str:
    if count:
        return (
            f"Fetched {count} names from the {source_label} source (header skipped) "
            'and populated them into the "Update Attendance Tracker".'
        )
    return (
        f"No valid names (with ID, First Name, and Last Name) found in the {source_label} "
        'source after skipping the header. The "Update Attendance Tracker" has been cleared.'
    )


def build_reset_message(
    levels_cleared: int,
    community_id: str | None,
    counts: dict[str, Any] | None,
) -> str:
    lines: list[str] = []
    if levels_cleared:
        lines.append(f'{levels_cleared} entries in the "Activity Level" column have been cleared.')
    else:
        lines.append('No activity levels to clear in the "Activity Level" column.')

    if not community_id:
        lines.append("No Community ID was selected, so no attendance stats were changed.")
        return "\n".join(lines)

    counts = counts or {}
    processed = counts.get("processed", 0)
    if not processed:
        lines.append(
            "No people with full details (ID, First & Last Name) were listed in the tracker "
            f'to reset scores for community "{community_id}".'
        )
        return "\n".join(lines)

    not_found = counts.get("not_found") or []
    lines.append(f'For community "{community_id}":')
    lines.append(f"- Attempted to reset activity scores for {processed} people listed in the tracker.")
    lines.append(f"- Scores reset to 0 (or confirmed as already 0/blank) for: {counts.get('reset', 0)} people.")
    if not_found:
        lines.append(
            f"- Not found in the attendance stats (or details mismatched): {len(not_found)} people."
        )
        lines.append(f"   Details: {'; '.join(not_found)}")
    return "\n".join(lines)
