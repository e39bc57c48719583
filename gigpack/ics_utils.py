# gigpack/ics_utils.py
from __future__ import annotations

import re
import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from gigpack.config import gig_timezone

DEFAULT_EVENT_HOURS = 4


def _safe_str(v):
    return "" if v is None else str(v)


def _parse_date(d) -> date:
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    s = _safe_str(d).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        m = re.match(r"(\d{4})[-/]?(\d{2})[-/]?(\d{2})", s)
        if not m:
            raise ValueError(f"Unrecognized date: {d!r}")
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_time(t) -> Optional[time]:
    """'19:30', '19:30:00', '7:30 PM' → time; None when empty or unparseable."""
    if isinstance(t, time):
        return t
    s = _safe_str(t).strip().upper().replace(".", "")
    if not s:
        return None
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M:%S %p", "%I %p", "%H%M"):
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    return None


def gig_window(gig: dict, tz: Optional[str] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    (start, end) wall-clock datetimes for a gig pack, or (None, None) when it
    has no date. Start is the call time, else on-stage time; without either
    the window is the whole day (both values midnight-aligned).
    """
    if not gig.get("date"):
        return None, None
    zone = ZoneInfo(tz or gig_timezone())
    d = _parse_date(gig["date"])
    start_t = parse_time(gig.get("call_time")) or parse_time(gig.get("on_stage_time"))
    if start_t is None:
        start = datetime(d.year, d.month, d.day, tzinfo=zone)
        return start, start + timedelta(days=1)
    start = datetime(d.year, d.month, d.day, start_t.hour, start_t.minute, tzinfo=zone)
    return start, start + timedelta(hours=DEFAULT_EVENT_HOURS)


def _escape(text: str) -> str:
    # RFC 5545 TEXT escaping
    return (
        _safe_str(text)
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def gig_description(gig: dict) -> str:
    lines = []
    venue = gig.get("venue_name")
    if venue or gig.get("venue_address"):
        lines.append(f"Venue: {venue or ''}")
        if gig.get("venue_address"):
            lines.append(f"Address: {gig['venue_address']}")
    if gig.get("call_time"):
        lines.append(f"Call: {gig['call_time']}")
    if gig.get("on_stage_time"):
        lines.append(f"On stage: {gig['on_stage_time']}")

    schedule = [s for s in gig.get("schedule") or [] if s.get("label")]
    if schedule:
        lines.append("")
        lines.append("Schedule:")
        for s in schedule:
            lines.append(f"  {s.get('time') or '--:--'}  {s['label']}")

    lineup = [m for m in gig.get("lineup") or [] if m.get("role") or m.get("name")]
    if lineup:
        lines.append("")
        lines.append("Lineup:")
        for m in lineup:
            label = m.get("name") or "TBD"
            if m.get("role"):
                label = f"{label} ({m['role']})"
            lines.append(f"  - {label}")

    for key, heading in (("dress_code", "Dress"), ("parking_notes", "Parking"), ("notes", "Notes")):
        if gig.get(key):
            lines.append("")
            lines.append(f"{heading}: {gig[key]}")
    return "\n".join(lines)


def build_gig_ics(gig: dict, *, url: Optional[str] = None, tz: Optional[str] = None) -> Tuple[str, bytes]:
    """
    Returns (filename, ics_bytes) for a gig pack view model.
    METHOD:PUBLISH, so clients import it as a plain event (no RSVP).
    """
    zone_name = tz or gig_timezone()
    start, end = gig_window(gig, zone_name)
    if start is None:
        raise ValueError("Gig has no date")
    all_day = start.hour == 0 and start.minute == 0 and (end - start) == timedelta(days=1)

    location = " | ".join([s for s in [gig.get("venue_name"), gig.get("venue_address")] if s])
    description = gig_description(gig)
    if url:
        description = f"{description}\n\n{url}" if description else url
    uid = f"gigpack-{gig.get('id') or uuid.uuid4().hex}@gigpack"
    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    ics = []
    ics.append("BEGIN:VCALENDAR")
    ics.append("PRODID:-//Gig Pack//Gig Pack//EN")
    ics.append("VERSION:2.0")
    ics.append("CALSCALE:GREGORIAN")
    ics.append("METHOD:PUBLISH")
    ics.append("BEGIN:VEVENT")
    ics.append(f"UID:{uid}")
    ics.append(f"DTSTAMP:{dtstamp}")
    if all_day:
        ics.append(f"DTSTART;VALUE=DATE:{start.strftime('%Y%m%d')}")
        ics.append(f"DTEND;VALUE=DATE:{end.strftime('%Y%m%d')}")
    else:
        ics.append(f"DTSTART;TZID={zone_name}:{start.strftime('%Y%m%dT%H%M%S')}")
        ics.append(f"DTEND;TZID={zone_name}:{end.strftime('%Y%m%dT%H%M%S')}")
    ics.append(f"SUMMARY:{_escape(gig.get('title') or 'Gig')}")
    if location:
        ics.append(f"LOCATION:{_escape(location)}")
    if description:
        ics.append(f"DESCRIPTION:{_escape(description)}")
    if url:
        ics.append(f"URL:{url}")
    status = "CANCELLED" if gig.get("status") == "cancelled" else (
        "TENTATIVE" if gig.get("status") in ("tentative", "draft") else "CONFIRMED"
    )
    ics.append(f"STATUS:{status}")
    ics.append("END:VEVENT")
    ics.append("END:VCALENDAR")
    ics_bytes = ("\r\n".join(ics) + "\r\n").encode("utf-8")

    filename = f"{gig.get('title') or 'Gig'}-{start.strftime('%Y%m%d')}.ics".replace(" ", "_")
    return filename, ics_bytes
