# gigpack/setlist.py
# Pasted setlist text → songs.
#
#   "1. crazy in love + crazy – dm"  -> {"title": "Crazy in Love + Crazy", "key": "Dm"}
#   "it's my life - cm/eb"           -> {"title": "It's My Life", "key": "Cm/E♭"}

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from gigpack.models import new_id

LOWERCASE_WORDS = {
    "a", "an", "the",
    "in", "on", "at", "to", "for", "of", "with", "by", "from", "into", "onto", "as",
    "and", "but", "or", "nor", "yet", "so",
}

# en dash first, then the plain hyphen; both need spaces around them
KEY_SEPARATORS = (" – ", " - ")

_LEADING_NUMBER = re.compile(r"^\d+\.\s*")


def smart_title_case(text: str) -> str:
    words = (text or "").strip().split()
    out = []
    for i, word in enumerate(words):
        lower = word.lower()
        if 0 < i < len(words) - 1 and lower in LOWERCASE_WORDS:
            out.append(lower)
        elif len(word) > 1 and word.isupper():
            out.append(word)  # acronyms (YMCA)
        else:
            out.append(lower[:1].upper() + lower[1:])
    return " ".join(out)


def format_musical_key(key: str) -> str:
    s = (key or "").strip()
    s = s.replace("#", "♯")
    s = re.sub(r"([A-Ga-g])b", lambda m: m.group(1).upper() + "♭", s)
    s = re.sub(r"(^|/|\s)([a-g])", lambda m: m.group(1) + m.group(2).upper(), s)
    return s


def _split_key(line: str):
    for sep in KEY_SEPARATORS:
        idx = line.rfind(sep)
        if idx != -1:
            return line[:idx].strip(), line[idx + len(sep):].strip()
    return line, None


def parse_setlist_text(text: str) -> List[Dict[str, Any]]:
    """One song per non-empty line; position counts non-empty lines from 1."""
    lines = [ln for ln in (text or "").splitlines() if ln.strip()]
    songs = []
    for index, line in enumerate(lines):
        title, key = _split_key(line.strip())
        title = _LEADING_NUMBER.sub("", title).strip()
        if not title:
            continue
        songs.append({
            "title": smart_title_case(title),
            "key": format_musical_key(key) if key else None,
            "bpm": None,
            "position": index + 1,
        })
    return songs


def sections_from_text(text: str, section_name: str = "Set 1") -> List[Dict[str, Any]]:
    """Structured setlist (one section) from pasted text; empty text gives []."""
    songs = parse_setlist_text(text)
    if not songs:
        return []
    return [{
        "id": new_id(),
        "name": section_name,
        "songs": [
            {
                "id": new_id(),
                "title": s["title"],
                "artist": None,
                "key": s["key"],
                "tempo": str(s["bpm"]) if s["bpm"] else None,
                "notes": None,
                "referenceUrl": None,
            }
            for s in songs
        ],
    }]


def key_or_none(value: Optional[str]) -> Optional[str]:
    return format_musical_key(value) if value and value.strip() else None
