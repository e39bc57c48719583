# gigpack/reconcile.py
# Diff-based sync of form lists against child tables.
#
#   items is None  -> table untouched (field not submitted)
#   items == []    -> every row for the gig deleted
#   otherwise      -> rows not submitted are deleted, the rest upserted
#                     with sort_order = list index
#
# Uniqueness, cascades and RLS stay in the database.

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from gigpack.db import fetch_children, first_row, rows
from gigpack.models import (
    effective_user_id,
    material_kind,
    new_id,
    role_key,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

RowBuilder = Callable[[Dict[str, Any]], Dict[str, Any]]


def ids_to_delete(existing_ids: Iterable[Any], incoming_items: Iterable[Dict[str, Any]], id_field: str = "id") -> List[Any]:
    """Existing ids that no incoming item carries (existing order kept)."""
    keep = {str(it.get(id_field)) for it in incoming_items or [] if it.get(id_field)}
    return [i for i in existing_ids if str(i) not in keep]


def merge_child_rows(sb, table: str, gig_id: str, items: Optional[List[Dict[str, Any]]], build_row: RowBuilder) -> None:
    if items is None:
        return

    existing_ids = [r["id"] for r in fetch_children(sb, table, gig_id, select="id")]
    stale = ids_to_delete(existing_ids, items)
    if stale:
        sb.table(table).delete().in_("id", stale).execute()

    if not items:
        return

    payload = []
    for index, item in enumerate(items):
        row = build_row(item)
        row["id"] = item.get("id") or new_id()
        row["gig_id"] = gig_id
        row["sort_order"] = index
        payload.append(row)
    sb.table(table).upsert(payload, on_conflict="id").execute()
    logger.debug("MERGE_CHILD_ROWS %s gig=%s kept=%d deleted=%d", table, gig_id, len(payload), len(stale))


def merge_schedule_items(sb, gig_id: str, items: Optional[List[Dict[str, Any]]]) -> None:
    merge_child_rows(
        sb, "gig_schedule_items", gig_id, items,
        lambda it: {"time": it.get("time") or "", "label": it.get("label") or ""},
    )


def merge_materials(sb, gig_id: str, items: Optional[List[Dict[str, Any]]]) -> None:
    merge_child_rows(
        sb, "gig_materials", gig_id, items,
        lambda it: {
            "label": it.get("label") or "",
            "url": it.get("url") or "",
            "kind": material_kind(it.get("kind")),
        },
    )


def merge_packing_items(sb, gig_id: str, items: Optional[List[Dict[str, Any]]]) -> None:
    merge_child_rows(sb, "gig_packing_items", gig_id, items, lambda it: {"label": it.get("label") or ""})


def merge_contacts(sb, gig_id: str, items: Optional[List[Dict[str, Any]]]) -> None:
    merge_child_rows(
        sb, "gig_contacts", gig_id, items,
        lambda it: {
            "label": it.get("label") or "",
            "name": it.get("name") or "",
            "phone": it.get("phone") or None,
            "email": it.get("email") or None,
        },
    )


# ---------- Setlist ----------
def replace_setlist_sections(sb, gig_id: str, sections: Optional[List[Dict[str, Any]]]) -> None:
    """
    Sections are replaced wholesale; deleting a section removes its songs
    through the foreign key cascade.
    """
    if sections is None:
        return

    sb.table("setlist_sections").delete().eq("gig_id", gig_id).execute()
    if not sections:
        return

    section_rows = [
        {"gig_id": gig_id, "name": s.get("name") or "", "sort_order": index}
        for index, s in enumerate(sections)
    ]
    inserted = rows(sb.table("setlist_sections").insert(section_rows).execute())
    section_id_by_order = {r.get("sort_order"): r.get("id") for r in inserted}

    song_rows = []
    for index, section in enumerate(sections):
        section_id = section_id_by_order.get(index)
        if not section_id:
            logger.warning("SETLIST_SECTION_MISSING gig=%s order=%d", gig_id, index)
            continue
        for song_index, song in enumerate(section.get("songs") or []):
            song_rows.append({
                "section_id": section_id,
                "title": song.get("title") or "",
                "artist": song.get("artist") or None,
                "key": song.get("key") or None,
                "tempo": song.get("tempo") or None,
                "notes": song.get("notes") or None,
                "reference_url": song.get("referenceUrl") or song.get("reference_url") or None,
                "sort_order": song_index,
            })
    if song_rows:
        sb.table("setlist_items").insert(song_rows).execute()


# ---------- Lineup ----------
def _role_row(gig_id: str, member: Dict[str, Any], sort_order: int) -> Dict[str, Any]:
    user_id = effective_user_id(member)
    return {
        "gig_id": gig_id,
        "role_name": member.get("role") or "",
        "musician_name": member.get("name") or None,
        "musician_id": user_id,
        "contact_id": member.get("contactId") or None,
        "notes": member.get("notes") or None,
        "sort_order": sort_order,
        "invitation_status": "invited" if user_id else "pending",
    }


def _has_content(member: Dict[str, Any]) -> bool:
    return bool((member.get("role") or "").strip() or (member.get("name") or "").strip())


def merge_gig_roles(
    sb,
    gig_id: str,
    lineup: Optional[List[Dict[str, Any]]],
    is_editing: bool,
    gig_title: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Sync gig_roles with the submitted lineup and return the inserted rows.

    Editing keeps existing rows (and their invitation status) for members
    carrying a gigRoleId, deletes rows no member carries, and inserts the
    rest unless an existing row already matches them: same musician_id for
    linked members, same role::name for unlinked ones.
    """
    if lineup is None:
        return []
    members = [m for m in lineup if _has_content(m)]

    if not is_editing:
        if not members:
            return []
        payload = [_role_row(gig_id, m, i) for i, m in enumerate(members)]
        return rows(sb.table("gig_roles").insert(payload).execute())

    existing = fetch_children(sb, "gig_roles", gig_id, select="id, role_name, musician_name, musician_id")
    stale = ids_to_delete([r["id"] for r in existing], members, id_field="gigRoleId")
    if stale:
        sb.table("gig_roles").delete().in_("id", stale).execute()
    stale_set = {str(i) for i in stale}
    remaining = [r for r in existing if str(r["id"]) not in stale_set]

    by_musician = {str(r["musician_id"]): r for r in remaining if r.get("musician_id")}
    by_key = {
        role_key(r.get("role_name"), r.get("musician_name")): r
        for r in remaining if not r.get("musician_id")
    }

    to_insert = []
    for index, member in enumerate(members):
        role_id = member.get("gigRoleId")
        if role_id:
            sb.table("gig_roles").update({
                "role_name": member.get("role") or "",
                "musician_name": member.get("name") or None,
                "notes": member.get("notes") or None,
                "sort_order": index,
            }).eq("id", role_id).execute()
            continue

        user_id = effective_user_id(member)
        if user_id and str(user_id) in by_musician:
            continue
        if not user_id and role_key(member.get("role"), member.get("name")) in by_key:
            continue
        to_insert.append(member)

    if not to_insert:
        return []
    base = len(remaining)
    payload = [_role_row(gig_id, m, base + i) for i, m in enumerate(to_insert)]
    inserted = rows(sb.table("gig_roles").insert(payload).execute())
    logger.info(
        "GIG_ROLES_MERGED gig=%s title=%r deleted=%d inserted=%d actor=%s",
        gig_id, gig_title, len(stale), len(inserted), actor_id,
    )
    return inserted


# ---------- Share token ----------
def ensure_share_token(sb, gig_id: str, token: str) -> None:
    share = first_row(sb.table("gig_shares").select("token").eq("gig_id", gig_id).limit(1).execute())
    if share is None:
        sb.table("gig_shares").insert({
            "gig_id": gig_id,
            "token": token,
            "is_active": True,
            "created_at": utc_now_iso(),
        }).execute()
    elif share.get("token") != token:
        sb.table("gig_shares").update({"token": token}).eq("gig_id", gig_id).execute()
