# pages/02_Gigs.py
from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

from auth_helper import require_login
from gigpack.db import user_client
from gigpack.gigs import filter_gigs, list_gigs
from gigpack.models import GIG_STATUSES
from gigpack.ui_format import format_gig_date, format_time_12h, status_badge
from gigpack.ui_header import render_header

st.set_page_config(page_title="Gigs", page_icon="📅", layout="wide")

# ===============================
# Auth (any logged-in user)
# ===============================
user, session, user_id = require_login()
sb = user_client()

render_header("Gigs", emoji="📅")

try:
    gigs = list_gigs(sb, user_id)
except Exception as e:
    st.error(f"Could not load gigs: {e}")
    st.stop()

if not gigs:
    st.info("No gigs yet.")
    st.page_link("pages/03_Edit_Gig.py", label="Create your first gig pack", icon="➕")
    st.stop()

# ===============================
# Filters
# ===============================
with st.expander("Filters", expanded=True):
    c1, c2, c3 = st.columns([0.5, 0.3, 0.2])
    with c1:
        query = st.text_input("Search title, venue or band", "")
    with c2:
        statuses = st.multiselect("Status", GIG_STATUSES, default=[])
    with c3:
        upcoming_only = st.checkbox("Upcoming only", value=False)

shown = filter_gigs(gigs, query=query, statuses=statuses, upcoming_only=upcoming_only, today=date.today())
st.caption(f"{len(shown)} of {len(gigs)} gigs")

# ===============================
# Table
# ===============================
df = pd.DataFrame([
    {
        "id": g["id"],
        "Date": format_gig_date(g.get("date")),
        "Gig": g.get("title"),
        "Venue": g.get("venue_name") or "",
        "Band": g.get("band_name") or "",
        "Call": format_time_12h(g.get("call_time")),
        "Status": status_badge(g.get("status")),
        "Role": "Owner" if g.get("is_owner") else (g.get("my_role") or ""),
    }
    for g in shown
])

if df.empty:
    st.info("No gigs match these filters.")
    st.stop()

event = st.dataframe(
    df.drop(columns=["id"]),
    use_container_width=True,
    hide_index=True,
    on_select="rerun",
    selection_mode="single-row",
)

selected = event.selection.rows if event and hasattr(event, "selection") else []
if selected:
    gig = shown[selected[0]]
    st.session_state["selected_gig_id"] = gig["id"]
    c1, c2, c3 = st.columns(3)
    with c1:
        st.page_link("pages/04_Gig_Pack.py", label=f"Open “{gig.get('title')}”", icon="📦")
    if gig.get("is_owner"):
        with c2:
            if st.button("Edit", use_container_width=True):
                st.session_state["edit_mode"] = "edit"
                st.switch_page("pages/03_Edit_Gig.py")
        with c3:
            if st.button("Duplicate", use_container_width=True):
                st.session_state["edit_mode"] = "duplicate"
                st.switch_page("pages/03_Edit_Gig.py")
else:
    st.caption("Select a row to open, edit or duplicate a gig.")
