# pages/04_Gig_Pack.py
import streamlit as st

from auth_helper import require_login
from gigpack.calendar_utils import calendar_enabled, debug_auth_config, upsert_gig_calendar_event
from gigpack.config import public_base_url
from gigpack.db import user_client
from gigpack.gigs import accept_invitation, decline_invitation, get_gig_pack
from gigpack.ui_pack import render_gig_pack

st.set_page_config(page_title="Gig Pack", page_icon="📦", layout="wide")

user, session, user_id = require_login()
sb = user_client()

gig_id = st.query_params.get("gig") or st.session_state.get("selected_gig_id")
if not gig_id:
    st.info("Pick a gig on the Gigs page first.")
    st.page_link("pages/02_Gigs.py", label="Go to Gigs", icon="📅")
    st.stop()

pack = get_gig_pack(sb, gig_id)
if not pack:
    st.error("Gig not found, or you do not have access to it.")
    st.stop()

is_owner = str(pack.get("owner_id")) == str(user_id)
share_url = f"{public_base_url()}/Shared_Pack?token={pack['public_slug']}"

# ---- Owner actions ----
if is_owner:
    a1, a2, a4, a3 = st.columns([0.15, 0.2, 0.2, 0.45])
    with a1:
        if st.button("✏️ Edit", use_container_width=True):
            st.session_state["selected_gig_id"] = gig_id
            st.session_state["edit_mode"] = "edit"
            st.switch_page("pages/03_Edit_Gig.py")
    with a2:
        if not calendar_enabled():
            missing = ", ".join(debug_auth_config()["missing_keys"])
            st.caption(f"Calendar sync off (google_oauth missing: {missing})")
        elif st.button("🗓️ Sync calendar", use_container_width=True):
            res = upsert_gig_calendar_event(pack)
            if res.get("error"):
                st.error(f"Calendar sync failed: {res['error']} (stage: {res.get('stage')})")
            else:
                st.success(f"Calendar event {res['action']}.")
    with a4:
        if st.button("📧 Email lineup", use_container_width=True):
            try:
                from tools.send_lineup_invites import send_lineup_invites
                results = send_lineup_invites(gig_id)
            except Exception as e:
                st.error(f"Lineup email failed: {e}")
            else:
                sent = [r for r in results if r["status"] in ("sent", "dry-run")]
                skipped = [r for r in results if r["status"] == "skipped-no-email"]
                failed = [r for r in results if r["status"] == "failed"]
                st.success(f"Emailed {len(sent)} member(s); {len(skipped)} without an email.")
                if failed:
                    st.warning("Failed: " + ", ".join(r["to"] for r in failed))
    with a3:
        st.text_input("Share link", value=share_url, disabled=True)

# ---- My invitation ----
mine = [m for m in pack.get("lineup") or [] if str(m.get("userId")) == str(user_id)]
for m in mine:
    if m.get("invitationStatus") == "invited":
        st.info(f"You're invited as **{m.get('role') or 'musician'}**.")
        b1, b2, _ = st.columns([0.15, 0.15, 0.7])
        with b1:
            if st.button("Accept", key=f"acc_{m['gigRoleId']}", type="primary"):
                accept_invitation(sb, m["gigRoleId"])
                st.rerun()
        with b2:
            if st.button("Decline", key=f"dec_{m['gigRoleId']}"):
                decline_invitation(sb, m["gigRoleId"])
                st.rerun()

render_gig_pack(pack, show_private=is_owner, share_url=share_url)
