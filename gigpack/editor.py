# gigpack/editor.py
# DataFrame <-> payload list conversion for the st.data_editor tables on the
# Edit Gig page. Row ids ride along in a hidden "id" column so existing rows
# keep their identity through an edit.

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

SCHEDULE_COLUMNS = ["id", "time", "label"]
MATERIAL_COLUMNS = ["id", "label", "url", "kind"]
PACKING_COLUMNS = ["id", "label"]
CONTACT_COLUMNS = ["id", "label", "name", "phone", "email"]
LINEUP_COLUMNS = ["gigRoleId", "userId", "contactId", "role", "name", "email", "notes", "invitationStatus"]
SETLIST_COLUMNS = ["section", "id", "title", "artist", "key", "tempo", "notes", "referenceUrl"]


def _clean(v: Any) -> Any:
    if v is None:
        return None
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


def to_frame(items: Optional[Sequence[Dict[str, Any]]], columns: List[str]) -> pd.DataFrame:
    records = [{c: item.get(c) for c in columns} for item in items or []]
    return pd.DataFrame(records, columns=columns)


def from_frame(df: Optional[pd.DataFrame], columns: List[str], required: Sequence[str] = ()) -> List[Dict[str, Any]]:
    """
    Rows back to payload dicts, in editor order. Blank cells become None;
    rows that are completely blank (or miss a required column) are dropped.
    """
    if df is None:
        return []
    out = []
    for rec in df.to_dict("records"):
        item = {c: _clean(rec.get(c)) for c in columns}
        content = [v for k, v in item.items() if k not in ("id", "gigRoleId", "userId", "contactId") and v is not None]
        if not content:
            continue
        if any(item.get(c) is None for c in required):
            continue
        out.append(item)
    return out


def setlist_to_frame(sections: Optional[Sequence[Dict[str, Any]]]) -> pd.DataFrame:
    records = []
    for section in sections or []:
        if not section.get("songs"):
            # untitled row keeps an empty section in the grid
            records.append({"section": section.get("name") or ""})
        for song in section.get("songs") or []:
            records.append({
                "section": section.get("name") or "",
                **{c: song.get(c) for c in SETLIST_COLUMNS if c != "section"},
            })
    return pd.DataFrame(records, columns=SETLIST_COLUMNS)


def setlist_from_frame(
    df: Optional[pd.DataFrame],
    previous: Optional[Sequence[Dict[str, Any]]] = None,
    default_section: str = "Set 1",
) -> List[Dict[str, Any]]:
    """
    Group editor rows into sections, in first-appearance order.
    Section ids are reused from ``previous`` by name. A named row without
    a title keeps its section even when it has no songs.
    """
    ids_by_name = {s.get("name"): s.get("id") for s in previous or []}
    sections: Dict[str, Dict[str, Any]] = {}
    for song in from_frame(df, SETLIST_COLUMNS):
        name = song.pop("section")
        if song.get("title") is None and name is None:
            continue
        name = name or default_section
        if name not in sections:
            sections[name] = {"id": ids_by_name.get(name), "name": name, "songs": []}
        if song.get("title") is not None:
            sections[name]["songs"].append(song)
    return list(sections.values())
