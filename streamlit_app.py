from __future__ import annotations

import os
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import streamlit as st

import attendance_tools
from attendance_tools.app.pages import settings, tracker
from attendance_tools.data.db import connect, default_db_path, init_db

st.set_page_config(page_title="Community Tools", layout="wide")

# --- DB init (once per app start) ---
con = connect(default_db_path())
init_db(con)

# --- Sidebar navigation ---
st.sidebar.title("Community Tools")

build_number = (
    os.getenv("APP_BUILD")
    or os.getenv("BUILD_NUMBER")
    or attendance_tools.__version__
)
st.sidebar.markdown(
    f"""
    <style>
    [data-testid="stSidebar"] .build-info {{
        position: fixed;
        bottom: 0.5rem;
        left: 1rem;
        color: #6c757d;
        font-size: 0.75rem;
    }}
    </style>
    <div class="build-info">Build: {build_number}</div>
    """,
    unsafe_allow_html=True,
)

PAGES = {
    "Update Attendance Tracker": lambda: tracker.render(con),
    "Settings": lambda: settings.render(con),
}

params = st.query_params if hasattr(st, "query_params") else st.experimental_get_query_params()
page_param = params.get("page")
if isinstance(page_param, list):
    page_param = page_param[0] if page_param else None

page_labels = list(PAGES.keys())
default_index = page_labels.index(page_param) if page_param in PAGES else 0

selected = st.sidebar.radio("Pages", page_labels, index=default_index, key="sidebar_page")

# --- Render selected page ---
PAGES[selected]()
