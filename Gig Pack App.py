# Gig Pack App.py
# Dashboard: upcoming gigs, open invitations and recent notifications.

from datetime import date

import pandas as pd
import streamlit as st

from auth_helper import require_login
from gigpack.db import user_client
from gigpack.gigs import filter_gigs, list_gigs, list_invitations
from gigpack.notifications import list_notifications, mark_notification_read
from gigpack.ui_format import format_gig_date, format_time_12h, status_badge
from gigpack.ui_header import render_header

st.set_page_config(page_title="Gig Pack", page_icon="🎸", layout="wide")

if st.session_state.get("force_logged_out"):
    st.info("You have been logged out. Sign in from the Login page.")
    st.stop()

user, session, user_id = require_login()
sb = user_client()

render_header("Gig Pack", emoji="🎸", subtitle=f"Signed in as {st.session_state.get('user_email') or user_id}")

try:
    gigs = list_gigs(sb, user_id)
    invites = list_invitations(sb, user_id)
    notes = list_notifications(sb, user_id, unread_only=True, limit=10)
except Exception as e:
    st.error(f"Could not load your dashboard: {e}")
    st.stop()

upcoming = filter_gigs(gigs, upcoming_only=True, today=date.today())
upcoming = [g for g in upcoming if not g.get("is_archived")]
upcoming.sort(key=lambda g: str(g.get("date") or ""))

c1, c2, c3 = st.columns(3)
c1.metric("Upcoming gigs", len(upcoming))
c2.metric("Open invitations", len(invites))
c3.metric("Unread notifications", len(notes))

# ===============================
# Upcoming
# ===============================
st.subheader("Upcoming")
if not upcoming:
    st.info("No upcoming gigs. Create one from the Edit Gig page.")
else:
    df = pd.DataFrame([
        {
            "Date": format_gig_date(g.get("date")),
            "Gig": g.get("title"),
            "Venue": g.get("venue_name") or "",
            "Call": format_time_12h(g.get("call_time")),
            "Status": status_badge(g.get("status")),
            "Mine": "Owner" if g.get("is_owner") else (g.get("my_role") or "Member"),
        }
        for g in upcoming[:10]
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

# ===============================
# Invitations
# ===============================
if invites:
    st.subheader("Waiting for your answer")
    for inv in invites[:5]:
        g = inv["gig"]
        st.markdown(
            f"**{g.get('title') or 'Gig'}**, {format_gig_date(g.get('date'))}"
            f" as *{inv.get('role_name') or 'musician'}*"
        )
    st.page_link("pages/05_Invitations.py", label="Answer invitations", icon="✉️")

# ===============================
# Notifications
# ===============================
st.subheader("Notifications")
if not notes:
    st.caption("Nothing new.")
for n in notes:
    col_a, col_b = st.columns([0.85, 0.15])
    with col_a:
        st.markdown(f"**{n.get('title')}**  \n{n.get('message') or ''}")
    with col_b:
        if st.button("Mark read", key=f"read_{n['id']}"):
            mark_notification_read(sb, n["id"])
            st.rerun()
