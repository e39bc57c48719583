# gigpack/transforms.py
# Row → view-model shaping for gig pack child tables.
# Every list is ordered by sort_order (missing order sorts as 0).

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from gigpack.models import material_kind


def _by_order(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(rows or [], key=lambda r: r.get("sort_order") or 0)


def _nz(v: Any) -> Optional[Any]:
    """Empty strings read back as None."""
    if v is None:
        return None
    if isinstance(v, str) and not v.strip():
        return None
    return v


def transform_schedule_items(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"id": r.get("id"), "time": _nz(r.get("time")), "label": r.get("label") or ""}
        for r in _by_order(rows)
    ]


def transform_materials(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": r.get("id"),
            "label": r.get("label") or "",
            "url": r.get("url") or "",
            "kind": material_kind(r.get("kind")),
        }
        for r in _by_order(rows)
    ]


def transform_packing_checklist(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"id": r.get("id"), "label": r.get("label") or ""} for r in _by_order(rows)]


def transform_contacts(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": r.get("id"),
            "label": r.get("label") or "",
            "name": r.get("name") or "",
            "phone": _nz(r.get("phone")),
            "email": _nz(r.get("email")),
        }
        for r in _by_order(rows)
    ]


def transform_setlist_structured(
    sections: Iterable[Dict[str, Any]],
    items: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Sections plus their songs; songs matched by section_id."""
    by_section: Dict[str, List[Dict[str, Any]]] = {}
    for it in items or []:
        by_section.setdefault(str(it.get("section_id")), []).append(it)

    out = []
    for s in _by_order(sections):
        songs = [
            {
                "id": it.get("id"),
                "title": it.get("title") or "",
                "artist": _nz(it.get("artist")),
                "key": _nz(it.get("key")),
                "tempo": _nz(it.get("tempo")),
                "notes": _nz(it.get("notes")),
                "referenceUrl": _nz(it.get("reference_url")),
            }
            for it in _by_order(by_section.get(str(s.get("id")), []))
        ]
        out.append({"id": s.get("id"), "name": s.get("name") or "", "songs": songs})
    return out


def transform_lineup(
    roles: Iterable[Dict[str, Any]],
    profiles_by_id: Optional[Dict[str, Dict[str, Any]]] = None,
    profiles_by_name: Optional[Dict[str, Dict[str, Any]]] = None,
    contacts_by_id: Optional[Dict[str, Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    """
    gig_roles rows → lineup members.
    Email/phone/avatar come from the linked profile (by musician_id, else by
    name for roles linked to nothing), then from the role's contact.
    """
    profiles_by_id = profiles_by_id or {}
    profiles_by_name = profiles_by_name or {}
    contacts_by_id = contacts_by_id or {}

    out = []
    for r in _by_order(roles):
        if r.get("musician_id"):
            profile = profiles_by_id.get(str(r["musician_id"])) or {}
        elif not r.get("contact_id") and r.get("musician_name"):
            profile = profiles_by_name.get(r["musician_name"]) or {}
        else:
            profile = {}
        contact = contacts_by_id.get(str(r.get("contact_id"))) or {}
        out.append({
            "role": r.get("role_name"),
            "name": r.get("musician_name"),
            "notes": r.get("notes"),
            "invitationStatus": r.get("invitation_status"),
            "gigRoleId": r.get("id"),
            "userId": r.get("musician_id"),
            "contactId": r.get("contact_id"),
            "agreedFee": r.get("agreed_fee"),
            "email": profile.get("email") or contact.get("email"),
            "phone": profile.get("phone") or contact.get("phone"),
            "avatarUrl": profile.get("avatar_url"),
        })
    return out


def setlist_text_from_structured(sections: Iterable[Dict[str, Any]]) -> str:
    lines = []
    for section in sections or []:
        for song in section.get("songs") or []:
            line = song.get("title") or ""
            if song.get("artist"):
                line += f" - {song['artist']}"
            if song.get("key"):
                line += f" | {song['key']}"
            if song.get("tempo"):
                line += f" {song['tempo']} BPM"
            lines.append(line)
    return "\n".join(lines)
