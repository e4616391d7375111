from __future__ import annotations

import sqlite3

import pandas as pd
import streamlit as st

from attendance_tools.data.repositories import CommunityRepository
from attendance_tools.data.sources import default_event_log_path


def render(con: sqlite3.Connection) -> None:
    st.header("Settings")
    st.caption("Communities and the locations of their directory, attendance stats and event log.")

    repo = CommunityRepository(con)
    communities = repo.list_communities()

    if not communities:
        st.info("No communities registered.")
    else:
        df = pd.DataFrame(communities)
        df = df[["community_id", "directory_source", "stats_source", "event_log"]].rename(
            columns={
                "community_id": "Community ID",
                "directory_source": "Directory",
                "stats_source": "Attendance Stats",
                "event_log": "Event Attendance",
            }
        )
        st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()
    st.subheader("Add / edit community")
    by_id = {row["community_id"]: row for row in communities}
    selected_id = st.selectbox("Community", ["(new)"] + list(by_id))
    selected = by_id.get(selected_id, {})

    with st.form("community_form"):
        community_id = st.text_input(
            "Community ID",
            value=selected.get("community_id", ""),
            disabled=bool(selected),
        )
        directory_source = st.text_input("Directory CSV", value=selected.get("directory_source") or "")
        stats_source = st.text_input("Attendance Stats CSV", value=selected.get("stats_source") or "")
        event_log = st.text_input(
            "Event Attendance CSV",
            value=selected.get("event_log") or "",
            help="Leave blank to log next to the Attendance Stats file.",
        )
        submitted = st.form_submit_button("Save")

    if submitted:
        try:
            repo.upsert_community(
                selected.get("community_id") or community_id,
                directory_source,
                stats_source,
                event_log,
            )
        except ValueError as exc:
            st.error(str(exc))
        else:
            st.success("Community saved.")
            st.rerun()

    if selected and not selected.get("event_log") and selected.get("stats_source"):
        st.caption(f"Event log: {default_event_log_path(selected['stats_source'])}")

    if selected:
        confirm_delete = st.checkbox("Confirm deleting this community", key="delete_community")
        if st.button("Delete", disabled=not confirm_delete):
            repo.delete_community(selected["community_id"])
            st.success("Community deleted.")
            st.rerun()
