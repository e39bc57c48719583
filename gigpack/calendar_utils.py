# gigpack/calendar_utils.py
# Google Calendar sync for gig packs via OAuth refresh token (secrets [google_oauth]).
# Events are found by the private extended property gig_id=<id>.
# Public entry points never raise: they return {"action": ...} or {"error", "stage"}.

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Iterable, Optional

from gigpack.config import get_section, get_setting, gig_timezone
from gigpack.ics_utils import gig_description, gig_window

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]


def _get_gcal_service():
    """
    Build a Calendar service from secrets['google_oauth'] with keys
    client_id, client_secret, refresh_token.
    """
    from googleapiclient.discovery import build
    from google.oauth2.credentials import Credentials as UserCreds
    from google.auth.transport.requests import Request

    oauth = get_section("google_oauth")
    cid = oauth.get("client_id")
    csec = oauth.get("client_secret")
    rtok = oauth.get("refresh_token")
    if not (cid and csec and rtok):
        raise RuntimeError("google_oauth must include client_id, client_secret, refresh_token.")

    creds = UserCreds(
        token=None,  # refreshed below
        refresh_token=rtok,
        client_id=cid,
        client_secret=csec,
        token_uri="https://oauth2.googleapis.com/token",
        scopes=SCOPES,
    )
    try:
        creds.refresh(Request())
    except Exception as e:
        raise RuntimeError(f"OAuth refresh failed (check scope=calendar.events and token validity): {e}")

    service = build("calendar", "v3", credentials=creds, cache_discovery=False)
    if service is None:
        raise RuntimeError("Google API build('calendar','v3', ...) returned None")
    return service


def calendar_enabled() -> bool:
    oauth = get_section("google_oauth")
    return bool(oauth.get("client_id") and oauth.get("client_secret") and oauth.get("refresh_token"))


def _resolve_calendar_id(calendar_name_or_id: Optional[str] = None) -> str:
    """Friendly name via secrets['gcal_ids'], else a raw calendarId passes through."""
    name = calendar_name_or_id or get_setting("GCAL_CALENDAR", "primary")
    return get_section("gcal_ids").get(name, name)


def compose_event_body(gig: Dict[str, Any], gig_id: str, tz: Optional[str] = None) -> Dict[str, Any]:
    """
    Event body for a gig pack view model.
    Attendees are the lineup members with an email address.
    """
    zone = tz or gig_timezone()
    start, end = gig_window(gig, zone)
    if start is None:
        raise ValueError("gig has no date")

    location = " | ".join([p for p in [gig.get("venue_name"), gig.get("venue_address")] if p])
    description = html.escape(gig_description(gig)).replace("\n", "<br/>")

    if (end - start).days == 1 and start.hour == 0 and start.minute == 0:
        when = {
            "start": {"date": start.date().isoformat()},
            "end": {"date": end.date().isoformat()},
        }
    else:
        when = {
            "start": {"dateTime": start.isoformat(), "timeZone": zone},
            "end": {"dateTime": end.isoformat(), "timeZone": zone},
        }

    emails = []
    for m in gig.get("lineup") or []:
        email = (m.get("email") or "").strip().lower()
        if email and email not in emails:
            emails.append(email)

    body = {
        "summary": (gig.get("title") or "Gig").strip(),
        "location": location,
        "description": description,
        "reminders": {"useDefault": True},
        "extendedProperties": {"private": {"gig_id": str(gig_id)}},
        **when,
    }
    if emails:
        body["attendees"] = [{"email": e} for e in emails]
    return body


def _find_event(service, calendar_id: str, gig_id: str) -> Optional[Dict[str, Any]]:
    search = service.events().list(
        calendarId=calendar_id,
        privateExtendedProperty=f"gig_id={gig_id}",
        maxResults=1,
        singleEvents=True,
        showDeleted=False,
    ).execute()
    items = (search or {}).get("items", []) or []
    return items[0] if items else None


def _err(stage: str, e: Any, calendar_id: Optional[str] = None) -> Dict[str, Any]:
    logger.error("GCAL_ERR stage=%s calendarId=%s error=%s", stage, calendar_id, e)
    out = {"error": str(e), "stage": stage}
    if calendar_id:
        out["calendarId"] = calendar_id
    return out


def upsert_gig_calendar_event(gig: Dict[str, Any], calendar_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Create or update the Calendar event for a gig pack view model.

    Success: {"action": "created"|"updated", "eventId", "calendarId", "summary"}
    Failure: {"error", "stage": "args|auth|compose|search|insert|update", "calendarId"?}
    """
    gig_id = gig.get("id")
    if not gig_id:
        return _err("args", "gig id is required")

    try:
        service = _get_gcal_service()
    except Exception as e:
        return _err("auth", f"auth/build failure: {e}")

    calendar_id = _resolve_calendar_id(calendar_name)
    try:
        body = compose_event_body(gig, gig_id)
    except Exception as e:
        return _err("compose", e, calendar_id)

    try:
        found = _find_event(service, calendar_id, gig_id)
    except Exception as e:
        return _err("search", e, calendar_id)

    stage = "update" if found else "insert"
    try:
        if found:
            event = service.events().update(calendarId=calendar_id, eventId=found["id"], body=body).execute()
        else:
            event = service.events().insert(calendarId=calendar_id, body=body).execute()
    except Exception as e:
        return _err(stage, e, calendar_id)

    res = {
        "action": "updated" if found else "created",
        "eventId": event["id"],
        "calendarId": calendar_id,
        "summary": event.get("summary"),
    }
    logger.info("GCAL_UPSERT %s", res)
    return res


def cancel_role_calendar_events(gig_id: str, emails: Iterable[str], calendar_name: Optional[str] = None) -> Dict[str, Any]:
    """Drop removed lineup members from the gig's event attendees."""
    drop = {(e or "").strip().lower() for e in emails or [] if e}
    if not drop:
        return {"action": "noop"}
    if not calendar_enabled():
        return {"action": "skipped", "reason": "calendar not configured"}

    try:
        service = _get_gcal_service()
    except Exception as e:
        return _err("auth", e)

    calendar_id = _resolve_calendar_id(calendar_name)
    try:
        event = _find_event(service, calendar_id, gig_id)
    except Exception as e:
        return _err("search", e, calendar_id)
    if not event:
        return {"action": "noop", "calendarId": calendar_id}

    attendees = event.get("attendees") or []
    kept = [a for a in attendees if (a.get("email") or "").lower() not in drop]
    if len(kept) == len(attendees):
        return {"action": "noop", "calendarId": calendar_id}

    try:
        service.events().patch(
            calendarId=calendar_id,
            eventId=event["id"],
            body={"attendees": kept},
            sendUpdates="all",
        ).execute()
    except Exception as e:
        return _err("patch", e, calendar_id)

    res = {"action": "attendees_removed", "removed": len(attendees) - len(kept), "calendarId": calendar_id}
    logger.info("GCAL_ATTENDEES_REMOVED gig=%s %s", gig_id, res)
    return res


def cancel_gig_calendar_events(gig_id: str, calendar_name: Optional[str] = None) -> Dict[str, Any]:
    """Delete the gig's event (gig trashed)."""
    if not calendar_enabled():
        return {"action": "skipped", "reason": "calendar not configured"}
    try:
        service = _get_gcal_service()
    except Exception as e:
        return _err("auth", e)

    calendar_id = _resolve_calendar_id(calendar_name)
    try:
        event = _find_event(service, calendar_id, gig_id)
    except Exception as e:
        return _err("search", e, calendar_id)
    if not event:
        return {"action": "noop", "calendarId": calendar_id}

    try:
        service.events().delete(calendarId=calendar_id, eventId=event["id"], sendUpdates="all").execute()
    except Exception as e:
        return _err("delete", e, calendar_id)
    logger.info("GCAL_EVENT_DELETED gig=%s eventId=%s", gig_id, event["id"])
    return {"action": "deleted", "eventId": event["id"], "calendarId": calendar_id}


def debug_auth_config() -> dict:
    """Which google_oauth keys are present (names only, never values)."""
    oauth = get_section("google_oauth")
    need = {"client_id", "client_secret", "refresh_token"}
    present = {k for k in need if oauth.get(k)}
    return {
        "has_google_oauth": present == need,
        "present_keys": sorted(present),
        "missing_keys": sorted(need - present),
    }


__all__ = [
    "compose_event_body",
    "upsert_gig_calendar_event",
    "cancel_role_calendar_events",
    "cancel_gig_calendar_events",
    "calendar_enabled",
    "debug_auth_config",
]
