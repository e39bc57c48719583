# gigpack/notifications.py
# In-app notifications (one row per user/gig/type; duplicates skipped on write).

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError

from gigpack.db import rows
from gigpack.models import (
    NOTIF_GIG_CANCELLED,
    NOTIF_GIG_UPDATED,
    NOTIF_INVITATION,
    date_part,
    effective_user_id,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

UPDATE_MESSAGE = "Important details (date, time, or location) have changed. Please check the gig pack."
NOTIF_CONFLICT_COLUMNS = "user_id,gig_id,type"


def _pack_link(gig_id: str) -> str:
    return f"/gigs/{gig_id}/pack"


def create_notifications(sb, notif_rows: List[Dict[str, Any]]) -> int:
    """
    Insert rows, skipping any (user_id, gig_id, type) that already exists.
    Returns how many were written; the rest of a batch still lands when
    some rows are duplicates.
    """
    if not notif_rows:
        return 0
    try:
        written = len(rows(
            sb.table("notifications")
            .upsert(notif_rows, on_conflict=NOTIF_CONFLICT_COLUMNS, ignore_duplicates=True)
            .execute()
        ))
    except APIError as e:
        logger.error("NOTIFY_INSERT_ERR %s", e)
        return 0
    if written < len(notif_rows):
        logger.info("NOTIFY_DUPLICATE_SKIPPED count=%d", len(notif_rows) - written)
    return written


def invitation_notification(gig_id: str, gig_title: Optional[str], role: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user_id": role.get("musician_id"),
        "type": NOTIF_INVITATION,
        "title": f"Invitation: {gig_title or 'New Gig'}",
        "message": f"You've been invited as {role.get('role_name') or 'a team member'}",
        "link": _pack_link(gig_id),
        "gig_id": gig_id,
        "gig_role_id": role.get("id"),
    }


def notify_inserted_roles(sb, gig_id: str, gig_title: Optional[str], inserted: Iterable[Dict[str, Any]], actor_id: Optional[str]) -> int:
    """Invitation rows for freshly inserted roles, skipping the actor's own."""
    payload = [
        invitation_notification(gig_id, gig_title, r)
        for r in inserted or []
        if r.get("musician_id") and str(r["musician_id"]) != str(actor_id or "")
    ]
    return create_notifications(sb, payload)


def send_invitation_notifications(sb, gig_id: str, lineup: Optional[List[Dict[str, Any]]], gig_title: Optional[str]) -> int:
    """One invitation per lineup member linked to a user."""
    payload = []
    for member in lineup or []:
        user_id = effective_user_id(member)
        if not user_id:
            continue
        payload.append(invitation_notification(gig_id, gig_title, {
            "musician_id": user_id,
            "role_name": member.get("role"),
            "id": member.get("gigRoleId"),
        }))
    return create_notifications(sb, payload)


# ---------- Important-change detection ----------
def _changed(new: Any, *old: Any) -> bool:
    if new in (None, ""):
        return False
    return all(new != o for o in old)


def important_fields_changed(before: Optional[Dict[str, Any]], data: Dict[str, Any], date_value: Optional[str]) -> List[str]:
    """Names of the important fields whose submitted value differs from ``before``."""
    if not before:
        return []
    changed = []
    if _changed(data.get("title"), before.get("title")):
        changed.append("title")
    if date_value and date_part(date_value) != date_part(before.get("date")):
        changed.append("date")
    if _changed(data.get("call_time"), before.get("call_time")):
        changed.append("call_time")
    if _changed(data.get("on_stage_time"), before.get("on_stage_time")):
        changed.append("on_stage_time")
    if _changed(data.get("venue_name"), before.get("venue_name"), before.get("location_name")):
        changed.append("venue_name")
    if _changed(data.get("venue_address"), before.get("venue_address"), before.get("location_address")):
        changed.append("venue_address")
    return changed


def _notifiable_roles(sb, gig_id: str) -> List[Dict[str, Any]]:
    roles = rows(
        sb.table("gig_roles")
        .select("id, musician_id, invitation_status")
        .eq("gig_id", gig_id)
        .execute()
    )
    return [r for r in roles if r.get("musician_id") and r.get("invitation_status") != "pending"]


def _update_rows(gig_id: str, title: Optional[str], roles: Iterable[Dict[str, Any]], notif_type: str, message: str) -> List[Dict[str, Any]]:
    heading = "Gig cancelled" if notif_type == NOTIF_GIG_CANCELLED else "Gig updated"
    return [
        {
            "user_id": r["musician_id"],
            "type": notif_type,
            "title": f"{heading}: {title or 'Gig'}",
            "message": message,
            "link": _pack_link(gig_id),
            "gig_id": gig_id,
            "gig_role_id": r.get("id"),
        }
        for r in roles
    ]


def detect_changes_and_notify(sb, gig_id: str, before: Optional[Dict[str, Any]], data: Dict[str, Any], date_value: Optional[str]) -> List[str]:
    changed = important_fields_changed(before, data, date_value)
    if not changed:
        return []
    roles = _notifiable_roles(sb, gig_id)
    title = data.get("title") or (before or {}).get("title")
    created = create_notifications(sb, _update_rows(gig_id, title, roles, NOTIF_GIG_UPDATED, UPDATE_MESSAGE))
    logger.info("GIG_CHANGE_NOTIFY gig=%s fields=%s notified=%d", gig_id, changed, created)
    return changed


def notify_status_change(sb, gig_id: str, title: Optional[str], roles: Optional[List[Dict[str, Any]]], status: str) -> int:
    """confirmed/tentative -> gig_updated, cancelled -> gig_cancelled, others silent."""
    if status in ("confirmed", "tentative"):
        notif_type = NOTIF_GIG_UPDATED
        message = f"The gig is now {status}."
    elif status == "cancelled":
        notif_type = NOTIF_GIG_CANCELLED
        message = "This gig has been cancelled."
    else:
        return 0
    if roles is None:
        roles = _notifiable_roles(sb, gig_id)
    roles = [r for r in roles if r.get("musician_id") and r.get("invitation_status") != "pending"]
    return create_notifications(sb, _update_rows(gig_id, title, roles, notif_type, message))


# ---------- Inbox ----------
def list_notifications(sb, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Dict[str, Any]]:
    q = sb.table("notifications").select("*").eq("user_id", user_id)
    if unread_only:
        q = q.is_("read_at", "null")
    return rows(q.order("created_at", desc=True).limit(limit).execute())


def mark_notification_read(sb, notification_id: str) -> None:
    sb.table("notifications").update({"read_at": utc_now_iso()}).eq("id", notification_id).execute()
