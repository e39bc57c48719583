# gigpack/models.py
# Constants and small helpers for the gig pack payload.
#
# A gig pack travels as a plain dict (the editor's form state):
#   title, date, call_time, on_stage_time, venue_name, venue_address, ...
#   lineup:             [{role, name, notes, gigRoleId, userId, linkedUserId, contactId}]
#   schedule:           [{id, time, label}]
#   materials:          [{id, label, url, kind}]
#   packing_checklist:  [{id, label}]
#   setlist_structured: [{id, name, songs: [{id, title, artist, key, tempo, notes, referenceUrl}]}]
#   contacts:           [{id, label, name, phone, email}]

from __future__ import annotations

import re
import secrets
import unicodedata
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

GIG_STATUSES = ["draft", "confirmed", "tentative", "completed", "cancelled"]
ARCHIVED_STATUSES = {"cancelled"}

INVITATION_STATUSES = [
    "pending",
    "invited",
    "accepted",
    "declined",
    "tentative",
    "needs_sub",
    "replaced",
]

MATERIAL_KINDS = ["rehearsal", "performance", "charts", "reference", "other"]

NOTIF_INVITATION = "invitation_received"
NOTIF_GIG_UPDATED = "gig_updated"
NOTIF_GIG_CANCELLED = "gig_cancelled"

DEFAULT_THEME = "minimal"
DEFAULT_POSTER_SKIN = "clean"

# Gig columns written by the editor, in the order the remote procedure reads them
GIG_FIELDS = [
    "title",
    "date",
    "band_id",
    "band_name",
    "call_time",
    "on_stage_time",
    "venue_name",
    "venue_address",
    "venue_maps_url",
    "hero_image_url",
    "band_logo_url",
    "gig_type",
    "theme",
    "poster_skin",
    "accent_color",
    "dress_code",
    "backline_notes",
    "parking_notes",
    "notes",
    "setlist",
    "setlist_pdf_url",
    "internal_notes",
    "payment_notes",
    "status",
]


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _slugify(text: str, max_len: int = 40) -> str:
    s = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    s = re.sub(r"[^a-z0-9]+", "-", s.lower()).strip("-")
    s = s[:max_len].rstrip("-")
    return s or "gig"


def generate_slug(title: str) -> str:
    """Share token for a new gig pack: readable prefix + random suffix."""
    return f"{_slugify(title)}-{secrets.token_hex(3)}"


def normalize_date(value: Any) -> Optional[str]:
    """'YYYY-MM-DD' → midnight UTC ISO timestamp; longer ISO strings pass through."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        value = value.isoformat()
    s = str(value).strip()
    if len(s) == 10:
        return f"{s}T00:00:00.000Z"
    return s


def date_part(value: Any) -> Optional[str]:
    """Date portion ('YYYY-MM-DD') of an ISO date or timestamp."""
    if not value:
        return None
    return str(value).split("T")[0][:10]


def effective_user_id(member: Dict[str, Any]) -> Optional[str]:
    return member.get("userId") or member.get("linkedUserId") or None


def role_key(role_name: Optional[str], musician_name: Optional[str]) -> str:
    return f"{role_name or ''}::{musician_name or ''}"


def is_archived_status(status: Optional[str]) -> bool:
    return (status or "") in ARCHIVED_STATUSES


def material_kind(kind: Optional[str]) -> str:
    return kind if kind in MATERIAL_KINDS else "other"


def _fresh_ids(items: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    if items is None:
        return None
    return [{**item, "id": new_id()} for item in items]


def prepare_gig_for_duplication(source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a saved gig pack into a new, unsaved one for the editor.
    - Title prefixed with "Copy of"
    - Lineup keeps role/name/contact, clears gigRoleId and invitationStatus
    - Schedule/materials/packing/setlist get fresh ids (so save creates new rows)
    - Drops id, owner_id, public_slug, timestamps and status
    """
    lineup = source.get("lineup")
    sections = source.get("setlist_structured")
    return {
        "title": f"Copy of {source.get('title') or ''}".strip(),
        "band_id": source.get("band_id"),
        "band_name": source.get("band_name"),
        "date": date_part(source.get("date")),
        "call_time": source.get("call_time"),
        "on_stage_time": source.get("on_stage_time"),
        "venue_name": source.get("venue_name"),
        "venue_address": source.get("venue_address"),
        "venue_maps_url": source.get("venue_maps_url"),
        "dress_code": source.get("dress_code"),
        "backline_notes": source.get("backline_notes"),
        "parking_notes": source.get("parking_notes"),
        "payment_notes": source.get("payment_notes"),
        "internal_notes": source.get("internal_notes"),
        "gig_type": source.get("gig_type"),
        "theme": source.get("theme"),
        "setlist": source.get("setlist"),
        "setlist_pdf_url": source.get("setlist_pdf_url"),
        "band_logo_url": source.get("band_logo_url"),
        "hero_image_url": source.get("hero_image_url"),
        "accent_color": source.get("accent_color"),
        "poster_skin": source.get("poster_skin"),
        "lineup": (
            [{**m, "gigRoleId": None, "invitationStatus": None} for m in lineup]
            if lineup is not None else None
        ),
        "setlist_structured": (
            [
                {**s, "id": new_id(), "songs": _fresh_ids(s.get("songs") or [])}
                for s in sections
            ]
            if sections is not None else None
        ),
        "schedule": _fresh_ids(source.get("schedule")),
        "materials": _fresh_ids(source.get("materials")),
        "packing_checklist": _fresh_ids(source.get("packing_checklist")),
    }
