# gigpack/save.py
# Gig pack save orchestration.
#
#   rpc    -> one call to the save_gig_pack remote procedure (single transaction)
#   direct -> gig row first, then the child merges in parallel
#
# Notifications and calendar cleanup run in the background afterwards and
# never fail a save.

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from gigpack import background
from gigpack.calendar_utils import cancel_role_calendar_events
from gigpack.config import save_mode
from gigpack.db import first_row, rows
from gigpack.errors import GigSaveError, GigValidationError, NotAuthenticated
from gigpack.models import GIG_FIELDS, generate_slug, normalize_date, utc_now_iso
from gigpack.notifications import (
    detect_changes_and_notify,
    notify_inserted_roles,
    send_invitation_notifications,
)
from gigpack.reconcile import (
    ensure_share_token,
    merge_contacts,
    merge_gig_roles,
    merge_materials,
    merge_packing_items,
    merge_schedule_items,
    replace_setlist_sections,
)

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = (
    "id, title, date, call_time, on_stage_time, venue_name, location_name, "
    "venue_address, location_address"
)


def build_gig_payload(data: Dict[str, Any], date_value: Optional[str]) -> Dict[str, Any]:
    """Gig columns from the form; empty values are stored as NULL."""
    payload = {k: (data.get(k) or None) for k in GIG_FIELDS}
    payload["title"] = data["title"]
    payload["date"] = date_value or utc_now_iso()
    return payload


# ---------- Pre-save snapshot ----------
def snapshot_before_save(sb, gig_id: str) -> Dict[str, Any]:
    """
    State needed after the save to work out what changed:
      gig          -> important fields as stored now
      calendar_roles -> [{id, email}] for roles that carry a calendar event
    """
    gig = first_row(sb.table("gigs").select(SNAPSHOT_FIELDS).eq("id", gig_id).limit(1).execute())

    cal_roles = [
        r for r in rows(
            sb.table("gig_roles")
            .select("id, google_calendar_event_id, musician_id, contact_id")
            .eq("gig_id", gig_id)
            .execute()
        )
        if r.get("google_calendar_event_id")
    ]

    profile_emails: Dict[str, str] = {}
    contact_emails: Dict[str, str] = {}
    musician_ids = sorted({str(r["musician_id"]) for r in cal_roles if r.get("musician_id")})
    contact_ids = sorted({str(r["contact_id"]) for r in cal_roles if r.get("contact_id")})
    if musician_ids:
        for p in rows(sb.table("profiles").select("id, email").in_("id", musician_ids).execute()):
            if p.get("email"):
                profile_emails[str(p["id"])] = p["email"]
    if contact_ids:
        for c in rows(sb.table("musician_contacts").select("id, email").in_("id", contact_ids).execute()):
            if c.get("email"):
                contact_emails[str(c["id"])] = c["email"]

    calendar_roles = [
        {
            "id": r["id"],
            "email": profile_emails.get(str(r.get("musician_id")))
            or contact_emails.get(str(r.get("contact_id"))),
        }
        for r in cal_roles
    ]
    return {"gig": gig, "calendar_roles": calendar_roles}


def removed_role_emails(calendar_roles: List[Dict[str, Any]], lineup: Optional[List[Dict[str, Any]]]) -> List[str]:
    """Emails of calendar-linked roles that no submitted member still carries."""
    if lineup is None:
        return []
    remaining = {str(m["gigRoleId"]) for m in lineup if m.get("gigRoleId")}
    return [r["email"] for r in calendar_roles if str(r["id"]) not in remaining and r.get("email")]


# ---------- Write paths ----------
def _save_via_rpc(sb, data, gig_payload, share_token, is_editing, gig_id) -> Dict[str, Any]:
    params = {
        "p_gig": gig_payload,
        "p_schedule": data.get("schedule") or [],
        "p_materials": data.get("materials") or [],
        "p_packing": data.get("packing_checklist") or [],
        "p_setlist": data.get("setlist_structured") or [],
        "p_roles": data.get("lineup") or [],
        "p_contacts": data.get("contacts") or [],
        "p_share_token": share_token,
        "p_is_editing": is_editing,
        "p_gig_id": gig_id,
    }
    result = sb.rpc("save_gig_pack", params).execute()
    out = result.data
    if isinstance(out, list):
        out = out[0] if out else None
    if not out or not out.get("id"):
        raise GigSaveError("RPC did not return gig ID", stage="rpc")
    return {"id": out["id"], "publicSlug": out.get("public_slug") or share_token}


def _save_direct(sb, data, gig_payload, share_token, is_editing, gig_id, user_id) -> Dict[str, Any]:
    if is_editing:
        sb.table("gigs").update({**gig_payload, "updated_at": utc_now_iso()}).eq("id", gig_id).execute()
        final_id = gig_id
    else:
        created = first_row(sb.table("gigs").insert({**gig_payload, "owner_id": user_id}).execute())
        if not created or not created.get("id"):
            raise GigSaveError("Gig insert returned no row", stage="gig")
        final_id = created["id"]

    with ThreadPoolExecutor(max_workers=4, thread_name_prefix="gigpack-save") as pool:
        roles_fut = pool.submit(
            merge_gig_roles, sb, final_id, data.get("lineup"), is_editing, data.get("title"), user_id
        )
        futures = [
            pool.submit(merge_schedule_items, sb, final_id, data.get("schedule")),
            pool.submit(merge_materials, sb, final_id, data.get("materials")),
            pool.submit(merge_packing_items, sb, final_id, data.get("packing_checklist")),
            pool.submit(merge_contacts, sb, final_id, data.get("contacts")),
            pool.submit(replace_setlist_sections, sb, final_id, data.get("setlist_structured")),
            pool.submit(ensure_share_token, sb, final_id, share_token),
        ]
        inserted_roles = roles_fut.result()
        for fut in futures:
            fut.result()

    if inserted_roles:
        background.submit(notify_inserted_roles, sb, final_id, data.get("title"), inserted_roles, user_id)
    return {"id": final_id, "publicSlug": share_token}


# ---------- Entry points ----------
def save_gig_pack(
    sb,
    data: Dict[str, Any],
    is_editing: bool,
    gig_id: Optional[str] = None,
    *,
    user_id: Optional[str],
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create or update a gig pack and all its child lists.
    Returns {"id", "publicSlug"}.
    """
    if not user_id:
        raise NotAuthenticated("User not authenticated")
    title = (data.get("title") or "").strip()
    if not title:
        raise GigValidationError("Title is required")
    if is_editing and not gig_id:
        raise GigValidationError("gig_id is required when editing")

    data = {**data, "title": title}
    share_token = data.get("public_slug") or generate_slug(title)
    date_value = normalize_date(data.get("date"))
    gig_payload = build_gig_payload(data, date_value)
    mode = mode or save_mode()

    before: Dict[str, Any] = {"gig": None, "calendar_roles": []}
    if is_editing:
        before = snapshot_before_save(sb, gig_id)

    try:
        if mode == "direct":
            result = _save_direct(sb, data, gig_payload, share_token, is_editing, gig_id, user_id)
        else:
            result = _save_via_rpc(sb, data, gig_payload, share_token, is_editing, gig_id)
    except GigSaveError:
        logger.exception("GIG_SAVE_%s failed gig=%s", mode.upper(), gig_id)
        raise
    except APIError as e:
        logger.error("GIG_SAVE_%s error gig=%s: %s", mode.upper(), gig_id, e)
        raise GigSaveError(getattr(e, "message", None) or str(e), stage=mode) from e

    final_id = result["id"]
    logger.info("GIG_SAVE_%s ok gig=%s editing=%s", mode.upper(), final_id, is_editing)

    background.submit(send_invitation_notifications, sb, final_id, data.get("lineup"), title)
    if is_editing:
        background.submit(detect_changes_and_notify, sb, gig_id, before["gig"], data, date_value)
        # rpc replaces the lineup with [] when none is sent
        lineup = data.get("lineup") if mode == "direct" else data.get("lineup") or []
        emails = removed_role_emails(before["calendar_roles"], lineup)
        if emails:
            background.submit(cancel_role_calendar_events, gig_id, emails)
    return result


def delete_gig_pack(sb, gig_id: str, user_id: Optional[str]) -> None:
    """Hard delete of an owned gig (children cascade)."""
    if not user_id:
        raise NotAuthenticated("User not authenticated")
    try:
        resp = sb.table("gigs").delete().eq("id", gig_id).eq("owner_id", user_id).execute()
    except APIError as e:
        logger.error("GIG_DELETE error gig=%s: %s", gig_id, e)
        raise GigSaveError(getattr(e, "message", None) or str(e), stage="delete") from e
    if not rows(resp):
        logger.warning("GIG_DELETE nothing deleted gig=%s user=%s", gig_id, user_id)
        raise GigSaveError("Gig not found or not owned by you", stage="delete")
    logger.info("GIG_DELETE ok gig=%s", gig_id)
