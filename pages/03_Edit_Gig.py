# =============================
# File: pages/03_Edit_Gig.py (create / edit / duplicate)
# =============================
from datetime import date, datetime, time
import random
import traceback

import streamlit as st

from auth_helper import require_login
from gigpack.config import public_base_url
from gigpack.db import user_client
from gigpack.editor import (
    CONTACT_COLUMNS,
    LINEUP_COLUMNS,
    MATERIAL_COLUMNS,
    PACKING_COLUMNS,
    SCHEDULE_COLUMNS,
    from_frame,
    setlist_from_frame,
    setlist_to_frame,
    to_frame,
)
from gigpack.errors import GigPackError
from gigpack.gigs import get_gig_pack, link_lineup_to_profiles, trash_gig, update_gig_status
from gigpack.models import GIG_STATUSES, MATERIAL_KINDS, date_part, prepare_gig_for_duplication
from gigpack.save import save_gig_pack
from gigpack.setlist import key_or_none, sections_from_text
from gigpack.ui_format import invite_badge
from gigpack.ui_header import render_header

st.set_page_config(page_title="Edit Gig", page_icon="✏️", layout="wide")

user, session, user_id = require_login()
sb = user_client()

# -----------------------------
# Mode: new | edit | duplicate
# -----------------------------
qp_gig = st.query_params.get("gig")
if qp_gig:
    st.session_state["selected_gig_id"] = qp_gig
    st.session_state.setdefault("edit_mode", "edit")

mode = st.session_state.get("edit_mode", "new")
gig_id = st.session_state.get("selected_gig_id") if mode in ("edit", "duplicate") else None
if not gig_id:
    mode = "new"

render_header({"new": "New Gig", "edit": "Edit Gig", "duplicate": "Duplicate Gig"}[mode], emoji="✏️")

c_new, _ = st.columns([0.2, 0.8])
with c_new:
    if mode != "new" and st.button("➕ Start a new gig instead"):
        st.session_state["edit_mode"] = "new"
        st.session_state.pop("selected_gig_id", None)
        st.query_params.clear()
        st.rerun()

# ---- Persisted save log (renders every run) ----
st.session_state.setdefault("save_log", [])


def _log(channel: str, msg: str, trace=None):
    st.session_state["save_log"].append({
        "ts": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "run_id": f"{random.randint(0, 2**32 - 1):08x}",
        "channel": channel,
        "msg": msg,
        "trace": trace,
    })
    st.session_state["save_log"] = st.session_state["save_log"][-50:]


# -----------------------------
# Load the source gig pack
# -----------------------------
source = {}
if gig_id:
    try:
        loaded = get_gig_pack(sb, gig_id)
    except Exception as e:
        st.error(f"Could not load gig: {e}")
        st.stop()
    if not loaded:
        st.error("Gig not found, or you do not have access to it.")
        st.stop()
    if mode == "edit" and str(loaded.get("owner_id")) != str(user_id):
        st.error("Only the gig owner can edit this gig pack.")
        st.stop()
    source = prepare_gig_for_duplication(loaded) if mode == "duplicate" else loaded

is_editing = mode == "edit"
form_key = f"{mode}_{gig_id or 'new'}"


def _as_time(v):
    if not v:
        return None
    try:
        return time.fromisoformat(str(v)[:5])
    except ValueError:
        return None


def _as_date(v):
    try:
        return date.fromisoformat(date_part(v)) if v else date.today()
    except ValueError:
        return date.today()


# -----------------------------
# Status / trash (edit only, outside the form)
# -----------------------------
if is_editing:
    s1, s2, s3 = st.columns([0.3, 0.2, 0.5])
    with s1:
        cur = source.get("status") or "draft"
        new_status = st.selectbox("Status", GIG_STATUSES, index=GIG_STATUSES.index(cur) if cur in GIG_STATUSES else 0)
    with s2:
        st.write("")
        if st.button("Update status", disabled=new_status == cur):
            try:
                update_gig_status(sb, gig_id, new_status)
                _log("status", f"{gig_id} -> {new_status}")
                st.toast(f"Status set to {new_status}.", icon="✅")
                st.rerun()
            except GigPackError as e:
                st.error(str(e))
    with s3:
        st.write("")
        if st.button("🗑️ Move to trash"):
            trash_gig(sb, gig_id)
            _log("trash", f"{gig_id} moved to trash")
            st.session_state["edit_mode"] = "new"
            st.session_state.pop("selected_gig_id", None)
            st.switch_page("pages/06_Trash.py")
    st.caption(f"Share link: {public_base_url()}/Shared_Pack?token={source.get('public_slug')}")

# -----------------------------
# Setlist paste helper (outside the form so it can rewrite the editor)
# -----------------------------
with st.expander("Paste a setlist", expanded=False):
    pasted = st.text_area("One song per line, e.g. `Superstition - Ebm`", key=f"paste_{form_key}")
    if st.button("Use pasted setlist"):
        st.session_state[f"setlist_override_{form_key}"] = sections_from_text(pasted)
        st.rerun()

sections_src = st.session_state.get(f"setlist_override_{form_key}", source.get("setlist_structured"))

# -----------------------------
# Form
# -----------------------------
with st.form(f"gig_form_{form_key}"):
    st.subheader("Basics")
    b1, b2 = st.columns(2)
    with b1:
        title = st.text_input("Title *", value=source.get("title") or "")
        band_name = st.text_input("Band", value=source.get("band_name") or "")
        gig_type = st.text_input("Gig type", value=source.get("gig_type") or "", placeholder="wedding, club, corporate…")
    with b2:
        gig_date = st.date_input("Date", value=_as_date(source.get("date")))
        t1, t2 = st.columns(2)
        with t1:
            call_time = st.time_input("Call time", value=_as_time(source.get("call_time")), step=900)
        with t2:
            on_stage_time = st.time_input("On stage", value=_as_time(source.get("on_stage_time")), step=900)

    st.subheader("Venue")
    v1, v2 = st.columns(2)
    with v1:
        venue_name = st.text_input("Venue name", value=source.get("venue_name") or "")
        venue_maps_url = st.text_input("Maps link", value=source.get("venue_maps_url") or "")
    with v2:
        venue_address = st.text_area("Address", value=source.get("venue_address") or "", height=100)

    st.subheader("Lineup")
    lineup_df = to_frame(
        [{**m, "invitationStatus": invite_badge(m.get("invitationStatus"))} for m in source.get("lineup") or []],
        LINEUP_COLUMNS,
    )
    lineup_edit = st.data_editor(
        lineup_df,
        num_rows="dynamic",
        use_container_width=True,
        column_order=["role", "name", "email", "notes", "invitationStatus"],
        column_config={
            "role": st.column_config.TextColumn("Role"),
            "name": st.column_config.TextColumn("Name"),
            "email": st.column_config.TextColumn("Email (links app users)"),
            "notes": st.column_config.TextColumn("Notes"),
            "invitationStatus": st.column_config.TextColumn("Invitation", disabled=True),
        },
        key=f"lineup_{form_key}",
    )

    st.subheader("Schedule")
    schedule_edit = st.data_editor(
        to_frame(source.get("schedule"), SCHEDULE_COLUMNS),
        num_rows="dynamic",
        use_container_width=True,
        column_order=["time", "label"],
        column_config={
            "time": st.column_config.TextColumn("Time (HH:MM)"),
            "label": st.column_config.TextColumn("What"),
        },
        key=f"schedule_{form_key}",
    )

    st.subheader("Setlist")
    setlist_edit = st.data_editor(
        setlist_to_frame(sections_src),
        num_rows="dynamic",
        use_container_width=True,
        column_order=["section", "title", "artist", "key", "tempo", "notes", "referenceUrl"],
        column_config={
            "section": st.column_config.TextColumn("Set"),
            "title": st.column_config.TextColumn("Song"),
            "referenceUrl": st.column_config.LinkColumn("Reference"),
        },
        key=f"setlist_{form_key}",
    )

    st.subheader("Materials")
    materials_edit = st.data_editor(
        to_frame(source.get("materials"), MATERIAL_COLUMNS),
        num_rows="dynamic",
        use_container_width=True,
        column_order=["label", "url", "kind"],
        column_config={
            "url": st.column_config.LinkColumn("URL"),
            "kind": st.column_config.SelectboxColumn("Kind", options=MATERIAL_KINDS, default="other"),
        },
        key=f"materials_{form_key}",
    )

    p1, p2 = st.columns(2)
    with p1:
        st.subheader("Packing checklist")
        packing_edit = st.data_editor(
            to_frame(source.get("packing_checklist"), PACKING_COLUMNS),
            num_rows="dynamic",
            use_container_width=True,
            column_order=["label"],
            key=f"packing_{form_key}",
        )
    with p2:
        st.subheader("Contacts")
        contacts_edit = st.data_editor(
            to_frame(source.get("contacts"), CONTACT_COLUMNS),
            num_rows="dynamic",
            use_container_width=True,
            column_order=["label", "name", "phone", "email"],
            key=f"contacts_{form_key}",
        )

    st.subheader("Logistics")
    l1, l2 = st.columns(2)
    with l1:
        dress_code = st.text_input("Dress code", value=source.get("dress_code") or "")
        parking_notes = st.text_area("Parking", value=source.get("parking_notes") or "")
        backline_notes = st.text_area("Backline", value=source.get("backline_notes") or "")
    with l2:
        notes = st.text_area("Notes for the band", value=source.get("notes") or "")
        payment_notes = st.text_area("Payment notes", value=source.get("payment_notes") or "")
        internal_notes = st.text_area("Internal notes (never shared)", value=source.get("internal_notes") or "")

    with st.expander("Look & links", expanded=False):
        setlist_pdf_url = st.text_input("Setlist PDF URL", value=source.get("setlist_pdf_url") or "")
        hero_image_url = st.text_input("Hero image URL", value=source.get("hero_image_url") or "")
        band_logo_url = st.text_input("Band logo URL", value=source.get("band_logo_url") or "")
        accent_color = st.color_picker("Accent color", value=source.get("accent_color") or "#1f6feb")

    submitted = st.form_submit_button("💾 Save gig pack", type="primary")

# -----------------------------
# Save
# -----------------------------
if submitted:
    songs_sections = setlist_from_frame(setlist_edit, previous=source.get("setlist_structured"))
    for section in songs_sections:
        for song in section["songs"]:
            song["key"] = key_or_none(song.get("key"))

    lineup = link_lineup_to_profiles(sb, from_frame(lineup_edit, LINEUP_COLUMNS))
    payload = {
        "title": title,
        "band_id": source.get("band_id"),
        "band_name": band_name,
        "gig_type": gig_type,
        "date": gig_date.isoformat() if gig_date else None,
        "call_time": call_time.strftime("%H:%M") if call_time else None,
        "on_stage_time": on_stage_time.strftime("%H:%M") if on_stage_time else None,
        "venue_name": venue_name,
        "venue_address": venue_address,
        "venue_maps_url": venue_maps_url,
        "dress_code": dress_code,
        "parking_notes": parking_notes,
        "backline_notes": backline_notes,
        "notes": notes,
        "payment_notes": payment_notes,
        "internal_notes": internal_notes,
        "setlist_pdf_url": setlist_pdf_url,
        "hero_image_url": hero_image_url,
        "band_logo_url": band_logo_url,
        "accent_color": accent_color,
        "theme": source.get("theme"),
        "poster_skin": source.get("poster_skin"),
        "status": source.get("status") if is_editing else "draft",
        "public_slug": source.get("public_slug") if is_editing else None,
        "lineup": lineup,
        "schedule": from_frame(schedule_edit, SCHEDULE_COLUMNS),
        "materials": from_frame(materials_edit, MATERIAL_COLUMNS, required=("url",)),
        "packing_checklist": from_frame(packing_edit, PACKING_COLUMNS),
        "contacts": from_frame(contacts_edit, CONTACT_COLUMNS),
        "setlist_structured": songs_sections,
    }

    try:
        result = save_gig_pack(sb, payload, is_editing, gig_id if is_editing else None, user_id=user_id)
    except GigPackError as e:
        _log("save", f"FAILED: {e}", traceback.format_exc())
        st.toast(f"Save failed: {e}", icon="⚠️")
        st.error(f"Could not save the gig pack: {e}")
    else:
        _log("save", f"saved {result['id']} ({'edit' if is_editing else mode})")
        st.session_state.pop(f"setlist_override_{form_key}", None)
        st.session_state["selected_gig_id"] = result["id"]
        st.session_state["edit_mode"] = "edit"
        st.toast("Gig pack saved.", icon="✅")
        st.rerun()

with st.expander("Save log (this session)", expanded=False):
    log = st.session_state["save_log"]
    if not log:
        st.markdown("_No entries yet in this session._")
    for i, e in enumerate(log, 1):
        st.markdown(f"**{i}. {e['ts']} [{e['run_id']}] {e['channel']}**: {e['msg']}")
        if e.get("trace"):
            st.code(e["trace"])
