# pages/05_Invitations.py
import streamlit as st

from auth_helper import require_login
from gigpack.db import user_client
from gigpack.gigs import accept_invitation, decline_invitation, list_invitations
from gigpack.ui_format import format_gig_date, format_time_12h, invite_badge
from gigpack.ui_header import render_header

st.set_page_config(page_title="Invitations", page_icon="✉️", layout="wide")

user, session, user_id = require_login()
sb = user_client()

render_header("Invitations", emoji="✉️")

show_all = st.toggle("Show answered invitations too", value=False)

try:
    invites = list_invitations(sb, user_id, open_only=not show_all)
except Exception as e:
    st.error(f"Could not load invitations: {e}")
    st.stop()

if not invites:
    st.info("No invitations waiting for you.")
    st.stop()

for inv in invites:
    g = inv["gig"]
    with st.container(border=True):
        c1, c2 = st.columns([0.7, 0.3])
        with c1:
            st.markdown(f"### {g.get('title') or 'Gig'}")
            st.caption(
                f"{format_gig_date(g.get('date'))} · {g.get('venue_name') or 'Venue TBD'}"
                f" · {g.get('band_name') or ''}"
            )
            st.markdown(f"Role: **{inv.get('role_name') or 'musician'}** · {invite_badge(inv.get('invitation_status'))}")
            if inv.get("notes"):
                st.markdown(f"_{inv['notes']}_")
        with c2:
            if inv.get("invitation_status") in ("invited", "tentative"):
                if st.button("Accept", key=f"acc_{inv['id']}", type="primary", use_container_width=True):
                    accept_invitation(sb, inv["id"])
                    st.toast("Accepted. See you there!", icon="✅")
                    st.rerun()
                if st.button("Decline", key=f"dec_{inv['id']}", use_container_width=True):
                    decline_invitation(sb, inv["id"])
                    st.toast("Declined.", icon="👋")
                    st.rerun()
            if st.button("Open gig pack", key=f"open_{inv['id']}", use_container_width=True):
                st.session_state["selected_gig_id"] = g["id"]
                st.switch_page("pages/04_Gig_Pack.py")
