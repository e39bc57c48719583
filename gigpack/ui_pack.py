# gigpack/ui_pack.py
# Read-only rendering of a gig pack view model (private and shared pages).
import streamlit as st

from gigpack.ics_utils import build_gig_ics
from gigpack.ui_format import format_currency, format_gig_date, format_time_12h, invite_badge, status_badge


def _section(title: str, body: str) -> None:
    if body:
        st.markdown(f"**{title}**")
        st.markdown(body)


def render_gig_pack(pack: dict, *, show_private: bool = False, share_url: str | None = None) -> None:
    accent = pack.get("accent_color") or "#1f6feb"
    if pack.get("hero_image_url"):
        st.image(pack["hero_image_url"], use_container_width=True)

    st.markdown(
        f"<h2 style='margin-bottom:0;border-left:6px solid {accent};padding-left:10px'>"
        f"{pack.get('title') or 'Gig'}</h2>",
        unsafe_allow_html=True,
    )
    meta = [format_gig_date(pack.get("date")), pack.get("band_name"), status_badge(pack.get("status"))]
    st.caption(" · ".join([m for m in meta if m]))
    if pack.get("is_archived"):
        st.warning("This gig has been cancelled.")

    c1, c2, c3 = st.columns(3)
    c1.metric("Call", format_time_12h(pack.get("call_time")) or "TBD")
    c2.metric("On stage", format_time_12h(pack.get("on_stage_time")) or "TBD")
    with c3:
        st.markdown(f"**{pack.get('venue_name') or 'Venue TBD'}**")
        if pack.get("venue_address"):
            st.markdown(pack["venue_address"])
        if pack.get("venue_maps_url"):
            st.markdown(f"[Open in Maps]({pack['venue_maps_url']})")

    tabs = st.tabs(["Schedule", "Lineup", "Setlist", "Logistics", "Materials", "Packing", "Contacts"])

    with tabs[0]:
        items = pack.get("schedule") or []
        if not items:
            st.caption("No schedule yet.")
        for s in items:
            st.markdown(f"`{format_time_12h(s.get('time')) or '--'}` {s.get('label')}")

    with tabs[1]:
        lineup = pack.get("lineup") or []
        if not lineup:
            st.caption("No lineup yet.")
        for m in lineup:
            line = f"**{m.get('role') or 'Role'}**: {m.get('name') or 'TBD'}"
            if show_private:
                line += f"  ·  {invite_badge(m.get('invitationStatus'))}"
                if m.get("email"):
                    line += f"  ·  {m['email']}"
                if m.get("agreedFee") is not None:
                    line += f"  ·  {format_currency(m['agreedFee'])}"
            if m.get("notes"):
                line += f"  \n_{m['notes']}_"
            st.markdown(line)

    with tabs[2]:
        sections = pack.get("setlist_structured") or []
        if sections:
            for section in sections:
                st.markdown(f"**{section.get('name') or 'Set'}**")
                for i, song in enumerate(section.get("songs") or [], 1):
                    extra = " · ".join([x for x in [song.get("artist"), song.get("key"),
                                                    f"{song['tempo']} BPM" if song.get("tempo") else None] if x])
                    st.markdown(f"{i}. {song.get('title')}" + (f"  ({extra})" if extra else ""))
        elif pack.get("setlist"):
            st.text(pack["setlist"])
        else:
            st.caption("No setlist yet.")
        if pack.get("setlist_pdf_url"):
            st.markdown(f"[Setlist PDF]({pack['setlist_pdf_url']})")

    with tabs[3]:
        _section("Dress code", pack.get("dress_code"))
        _section("Parking", pack.get("parking_notes"))
        _section("Backline", pack.get("backline_notes"))
        _section("Notes", pack.get("notes"))
        if show_private:
            _section("Payment", pack.get("payment_notes"))
            _section("Internal notes", pack.get("internal_notes"))

    with tabs[4]:
        mats = pack.get("materials") or []
        if not mats:
            st.caption("No materials.")
        for m in mats:
            st.markdown(f"- [{m.get('label') or m.get('url')}]({m.get('url')}) `{m.get('kind')}`")

    with tabs[5]:
        packing = pack.get("packing_checklist") or []
        if not packing:
            st.caption("Nothing to pack.")
        for p in packing:
            st.checkbox(p.get("label") or "", key=f"pack_{p.get('id')}")

    with tabs[6]:
        contacts = pack.get("contacts") or []
        if not contacts:
            st.caption("No contacts.")
        for c in contacts:
            bits = [c.get("phone"), c.get("email")]
            st.markdown(f"**{c.get('label')}**: {c.get('name')}  " + "  ·  ".join([b for b in bits if b]))

    if pack.get("date"):
        filename, ics = build_gig_ics(pack, url=share_url)
        st.download_button("📅 Add to calendar (.ics)", data=ics, file_name=filename, mime="text/calendar")
