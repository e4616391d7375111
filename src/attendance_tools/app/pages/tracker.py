from __future__ import annotations

import os
import sqlite3
from typing import Any

import altair as alt
import pandas as pd
import streamlit as st

from attendance_tools.data.repositories import CommunityRepository, TrackerRepository
from attendance_tools.data.sources import SourceUnavailableError
from attendance_tools.services import tracker_operations as ops
from attendance_tools.services.activity_score import ActivityLevel
from attendance_tools.services.event_dates import resolve_timezone

COLUMN_LABELS = {
    "person_id": "Person ID",
    "full_name": "Full Name",
    "last_name": "Last Name",
    "first_name": "First Name",
    "activity_level": "Activity Level",
}

LEVEL_OPTIONS = [level.value.capitalize() for level in ActivityLevel]


def _rows_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=list(COLUMN_LABELS))
    return df.rename(columns=COLUMN_LABELS)


def _frame_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    reverse = {label: field for field, label in COLUMN_LABELS.items()}
    df = df.rename(columns=reverse).astype(object)
    df = df.where(df.notna(), None)
    return df.to_dict(orient="records")


def _run(label: str, operation, *args: Any) -> None:
    try:
        result = operation(*args)
    except (ops.TrackerOperationError, SourceUnavailableError, ValueError) as exc:
        st.error(str(exc))
        return
    st.session_state["tracker_last_result"] = {"label": label, **result}
    st.rerun()


def _render_events_chart(records: list[Any]) -> None:
    if not records:
        return
    events_df = pd.DataFrame(
        [{"event_date": record.event_date.isoformat(), "person": record.full_name} for record in records]
    )
    chart = (
        alt.Chart(events_df)
        .mark_bar()
        .encode(
            x=alt.X("event_date:N", sort="descending", title="Event date"),
            y=alt.Y("count():Q", title="Backfill events", stack="zero"),
            color=alt.Color("person:N", legend=alt.Legend(title=None)),
            tooltip=[
                alt.Tooltip("event_date:N", title="Event date"),
                alt.Tooltip("person:N", title="Person"),
                alt.Tooltip("count():Q", title="Events"),
            ],
        )
        .properties(height=280)
    )
    st.altair_chart(chart, use_container_width=True)


def render(con: sqlite3.Connection) -> None:
    st.header("Update Attendance Tracker")

    tracker = TrackerRepository(con)
    communities = CommunityRepository(con).list_communities()
    community_ids = [row["community_id"] for row in communities]

    selected = tracker.get_selected_community()
    options = ["(none)"] + community_ids
    index = options.index(selected) if selected in options else 0
    choice = st.selectbox("Community ID", options, index=index)
    new_selection = None if choice == "(none)" else choice
    if new_selection != selected:
        tracker.set_selected_community(new_selection)
        st.rerun()
    if not community_ids:
        st.info("No communities registered yet. Add them in Settings.")

    rows = tracker.list_rows()
    edited = st.data_editor(
        _rows_frame(rows),
        num_rows="dynamic",
        use_container_width=True,
        hide_index=True,
        column_config={
            "Activity Level": st.column_config.SelectboxColumn(options=LEVEL_OPTIONS),
        },
        key="tracker_editor",
    )
    if st.button("Save tracker"):
        tracker.replace_rows(_frame_rows(edited))
        st.success("Tracker saved.")
        st.rerun()

    st.subheader("Actions")
    tz_name = os.getenv("ATTENDANCE_TOOLS_TIMEZONE")
    col1, col2, col3 = st.columns(3)
    if col1.button("Load Data"):
        _run("Load Data", ops.load_data, con)
    if col2.button("Get Names From Attendance Stats"):
        _run("Get Names", ops.fetch_names, con, "stats")
    if col3.button("Get Names From Directory"):
        _run("Get Names", ops.fetch_names, con, "directory")

    col4, col5, col6 = st.columns(3)
    if col4.button("Update Activity Level", type="primary"):
        try:
            tz = resolve_timezone(tz_name)
        except ValueError as exc:
            st.error(str(exc))
        else:
            _run("Update Activity Level", ops.update_activity_levels, con, None, tz)
    confirm_clear = col5.checkbox("Confirm clearing the tracker", key="confirm_clear")
    if col5.button("Clear Names", disabled=not confirm_clear):
        _run("Clear Names", ops.clear_tracker, con)
    if col6.button("Reset Activity Level"):
        _run("Reset Activity Level", ops.reset_activity_levels, con)

    last_result = st.session_state.get("tracker_last_result")
    if last_result:
        st.subheader(f"{last_result['label']} - Results")
        st.text(last_result["message"])
        _render_events_chart(last_result.get("records") or [])
