# gigpack/gigs.py
# Gig pack reads (view models) and the small lifecycle writes:
# status, trash/restore, invitations.

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from gigpack import background
from gigpack.calendar_utils import cancel_gig_calendar_events
from gigpack.db import fetch_children, fetch_one, first_row, rows
from gigpack.errors import GigValidationError
from gigpack.models import (
    DEFAULT_POSTER_SKIN,
    DEFAULT_THEME,
    GIG_STATUSES,
    date_part,
    is_archived_status,
    utc_now_iso,
)
from gigpack.notifications import notify_status_change
from gigpack.save import delete_gig_pack
from gigpack.transforms import (
    setlist_text_from_structured,
    transform_contacts,
    transform_lineup,
    transform_materials,
    transform_packing_checklist,
    transform_schedule_items,
    transform_setlist_structured,
)

logger = logging.getLogger(__name__)


def _index(items: Iterable[Dict[str, Any]], key: str) -> Dict[str, Dict[str, Any]]:
    return {str(r[key]): r for r in items or [] if r.get(key)}


def _profiles_for_roles(sb, roles: List[Dict[str, Any]]):
    ids = sorted({str(r["musician_id"]) for r in roles if r.get("musician_id")})
    names = sorted({
        r["musician_name"] for r in roles
        if not r.get("musician_id") and not r.get("contact_id") and r.get("musician_name")
    })
    by_id: Dict[str, Dict[str, Any]] = {}
    by_name: Dict[str, Dict[str, Any]] = {}
    if ids:
        by_id = _index(rows(
            sb.table("profiles").select("id, name, email, phone, avatar_url").in_("id", ids).execute()
        ), "id")
    if names:
        by_name = _index(rows(
            sb.table("profiles").select("id, name, email, phone, avatar_url").in_("name", names).execute()
        ), "name")
    return by_id, by_name


def _contacts_for_roles(sb, roles: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    ids = sorted({str(r["contact_id"]) for r in roles if r.get("contact_id")})
    if not ids:
        return {}
    return _index(rows(
        sb.table("musician_contacts").select("id, name, email, phone").in_("id", ids).execute()
    ), "id")


def load_lineup(sb, gig_id: str) -> List[Dict[str, Any]]:
    roles = fetch_children(sb, "gig_roles", gig_id)
    by_id, by_name = _profiles_for_roles(sb, roles)
    return transform_lineup(roles, by_id, by_name, _contacts_for_roles(sb, roles))


def _load_setlist(sb, gig_id: str) -> List[Dict[str, Any]]:
    sections = fetch_children(sb, "setlist_sections", gig_id)
    if not sections:
        return []
    section_ids = [s["id"] for s in sections]
    items = rows(sb.table("setlist_items").select("*").in_("section_id", section_ids).execute())
    return transform_setlist_structured(sections, items)


def get_gig_pack(sb, gig_id: str) -> Optional[Dict[str, Any]]:
    """
    Full gig pack view model, or None when the gig is missing (or hidden by RLS).
    """
    gig = fetch_one(sb, "gigs", "id", gig_id)
    if not gig:
        return None

    share = fetch_one(sb, "gig_shares", "gig_id", gig_id, select="token, is_active, expires_at")
    sections = _load_setlist(sb, gig_id)
    call_time = gig.get("call_time") or (str(gig["start_time"])[:5] if gig.get("start_time") else None)

    pack = {
        **gig,
        "venue_name": gig.get("venue_name") or gig.get("location_name"),
        "venue_address": gig.get("venue_address") or gig.get("location_address"),
        "call_time": call_time,
        "theme": gig.get("theme") or DEFAULT_THEME,
        "poster_skin": gig.get("poster_skin") or DEFAULT_POSTER_SKIN,
        "public_slug": (share or {}).get("token") or gig["id"],
        "is_archived": is_archived_status(gig.get("status")),
        "lineup": load_lineup(sb, gig_id),
        "schedule": transform_schedule_items(fetch_children(sb, "gig_schedule_items", gig_id)),
        "materials": transform_materials(fetch_children(sb, "gig_materials", gig_id)),
        "packing_checklist": transform_packing_checklist(fetch_children(sb, "gig_packing_items", gig_id)),
        "contacts": transform_contacts(fetch_children(sb, "gig_contacts", gig_id)),
        "setlist_structured": sections,
    }
    if not pack.get("setlist") and sections:
        pack["setlist"] = setlist_text_from_structured(sections)
    return pack


# ---------- Lists ----------
def list_gigs(sb, user_id: str, include_deleted: bool = False) -> List[Dict[str, Any]]:
    """Owned gigs plus gigs where the user holds a non-pending role, newest first."""
    owned = rows(sb.table("gigs").select("*").eq("owner_id", user_id).execute())
    for g in owned:
        g["is_owner"] = True

    my_roles = rows(
        sb.table("gig_roles")
        .select("gig_id, role_name, invitation_status")
        .eq("musician_id", user_id)
        .execute()
    )
    roles_by_gig = {str(r["gig_id"]): r for r in my_roles if r.get("invitation_status") != "pending"}
    owned_ids = {str(g["id"]) for g in owned}
    member_ids = [gid for gid in roles_by_gig if gid not in owned_ids]

    member: List[Dict[str, Any]] = []
    if member_ids:
        member = rows(sb.table("gigs").select("*").in_("id", member_ids).execute())
        for g in member:
            r = roles_by_gig.get(str(g["id"])) or {}
            g["is_owner"] = False
            g["my_role"] = r.get("role_name")
            g["my_invitation_status"] = r.get("invitation_status")

    out = owned + member
    if not include_deleted:
        out = [g for g in out if not g.get("deleted_at")]
    for g in out:
        g["venue_name"] = g.get("venue_name") or g.get("location_name")
        g["is_archived"] = is_archived_status(g.get("status"))
    out.sort(key=lambda g: str(g.get("date") or ""), reverse=True)
    return out


def filter_gigs(
    gigs: List[Dict[str, Any]],
    query: str = "",
    statuses: Optional[Iterable[str]] = None,
    upcoming_only: bool = False,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    q = (query or "").strip().lower()
    wanted = set(statuses or [])
    today_s = (today or date.today()).isoformat()

    out = []
    for g in gigs:
        if q:
            hay = " ".join(str(g.get(k) or "") for k in ("title", "venue_name", "location_name", "band_name")).lower()
            if q not in hay:
                continue
        if wanted and (g.get("status") or "draft") not in wanted:
            continue
        if upcoming_only and (date_part(g.get("date")) or "") < today_s:
            continue
        out.append(g)
    return out


# ---------- Status ----------
def update_gig_status(sb, gig_id: str, status: str) -> Dict[str, Any]:
    if status not in GIG_STATUSES:
        raise GigValidationError(f"Unknown status: {status}")
    updated = first_row(
        sb.table("gigs").update({"status": status, "updated_at": utc_now_iso()}).eq("id", gig_id).execute()
    ) or {"id": gig_id, "status": status}
    title = updated.get("title")
    if title is None:
        title = (fetch_one(sb, "gigs", "id", gig_id, select="title") or {}).get("title")
    background.submit(notify_status_change, sb, gig_id, title, None, status)
    logger.info("GIG_STATUS gig=%s status=%s", gig_id, status)
    return updated


# ---------- Trash ----------
def trash_gig(sb, gig_id: str) -> None:
    """Soft delete; the calendar event is removed and musicians told it's off."""
    gig = fetch_one(sb, "gigs", "id", gig_id, select="id, title")
    res = cancel_gig_calendar_events(gig_id)
    if res.get("error"):
        logger.warning("GIG_TRASH_CAL_CLEANUP_FAILED gig=%s %s", gig_id, res)
    sb.table("gigs").update({"deleted_at": utc_now_iso()}).eq("id", gig_id).execute()
    background.submit(notify_status_change, sb, gig_id, (gig or {}).get("title"), None, "cancelled")
    logger.info("GIG_TRASHED gig=%s", gig_id)


def restore_gig(sb, gig_id: str) -> None:
    sb.table("gigs").update({"deleted_at": None, "updated_at": utc_now_iso()}).eq("id", gig_id).execute()
    logger.info("GIG_RESTORED gig=%s", gig_id)


def permanently_delete_gig(sb, gig_id: str, user_id: str) -> None:
    """Hard delete of a trashed gig; children go with it through FK cascades."""
    gig = fetch_one(sb, "gigs", "id", gig_id, select="id, deleted_at")
    if gig and not gig.get("deleted_at"):
        raise GigValidationError("Move the gig to the trash before deleting it permanently.")
    delete_gig_pack(sb, gig_id, user_id)


def list_trashed_gigs(sb, user_id: str) -> List[Dict[str, Any]]:
    owned = rows(
        sb.table("gigs").select("*").eq("owner_id", user_id).order("deleted_at", desc=True).execute()
    )
    return [g for g in owned if g.get("deleted_at")]


# ---------- Invitations ----------
def _set_invitation_status(sb, role_id: str, status: str) -> Optional[Dict[str, Any]]:
    resp = (
        sb.table("gig_roles")
        .update({"invitation_status": status, "responded_at": utc_now_iso()})
        .eq("id", role_id)
        .execute()
    )
    logger.info("INVITE_RESPONSE role=%s status=%s", role_id, status)
    return first_row(resp)


def accept_invitation(sb, role_id: str) -> Optional[Dict[str, Any]]:
    return _set_invitation_status(sb, role_id, "accepted")


def decline_invitation(sb, role_id: str) -> Optional[Dict[str, Any]]:
    return _set_invitation_status(sb, role_id, "declined")


def list_invitations(sb, user_id: str, open_only: bool = True) -> List[Dict[str, Any]]:
    """The user's roles with their gig, soonest gig first. Trashed gigs are skipped."""
    roles = rows(sb.table("gig_roles").select("*").eq("musician_id", user_id).execute())
    if open_only:
        roles = [r for r in roles if r.get("invitation_status") == "invited"]
    if not roles:
        return []
    gig_ids = sorted({str(r["gig_id"]) for r in roles})
    gigs = _index(rows(
        sb.table("gigs")
        .select("id, title, date, venue_name, location_name, status, deleted_at, band_name")
        .in_("id", gig_ids)
        .execute()
    ), "id")

    out = []
    for r in roles:
        g = gigs.get(str(r["gig_id"]))
        if not g or g.get("deleted_at"):
            continue
        out.append({**r, "gig": {**g, "venue_name": g.get("venue_name") or g.get("location_name")}})
    out.sort(key=lambda r: str(r["gig"].get("date") or ""))
    return out


def profiles_by_email(sb, emails: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Lowercased email -> profile, for linking lineup rows to app users."""
    wanted = sorted({(e or "").strip().lower() for e in emails or [] if e and e.strip()})
    if not wanted:
        return {}
    found = rows(sb.table("profiles").select("id, name, email").in_("email", wanted).execute())
    return {str(p["email"]).lower(): p for p in found if p.get("email")}


def link_lineup_to_profiles(sb, lineup: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Members typed in with an email of a registered user get linkedUserId."""
    by_email = profiles_by_email(sb, [m.get("email") for m in lineup if not m.get("userId")])
    out = []
    for m in lineup:
        p = by_email.get((m.get("email") or "").strip().lower())
        if p and not m.get("userId"):
            m = {**m, "linkedUserId": p["id"], "name": m.get("name") or p.get("name")}
        out.append(m)
    return out
