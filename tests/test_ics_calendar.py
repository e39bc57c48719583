import pytest

from gigpack import calendar_utils
from gigpack.calendar_utils import (
    cancel_gig_calendar_events,
    cancel_role_calendar_events,
    compose_event_body,
    upsert_gig_calendar_event,
)
from gigpack.ics_utils import build_gig_ics, gig_window, parse_time

TZ = "America/New_York"

GIG = {
    "id": "g1",
    "title": "Jazz Night",
    "date": "2026-03-14T00:00:00.000Z",
    "call_time": "18:00",
    "on_stage_time": "20:00",
    "venue_name": "Blue Room",
    "venue_address": "1 Main St",
    "status": "confirmed",
    "schedule": [{"time": "18:00", "label": "Load in"}],
    "lineup": [
        {"role": "Drums", "name": "Sam", "email": "Sam@Example.com"},
        {"role": "Bass", "name": "Kim", "email": None},
        {"role": "Sub", "name": "Sam again", "email": "sam@example.com"},
    ],
}


# ---------- time window ----------
@pytest.mark.parametrize("raw,expected", [
    ("19:30", (19, 30)),
    ("19:30:00", (19, 30)),
    ("7:30 PM", (19, 30)),
    ("7 pm", (19, 0)),
])
def test_parse_time(raw, expected):
    t = parse_time(raw)
    assert (t.hour, t.minute) == expected


def test_parse_time_empty_or_garbage():
    assert parse_time("") is None
    assert parse_time("soon") is None


def test_gig_window_uses_call_time_then_on_stage():
    start, end = gig_window(GIG, TZ)
    assert (start.hour, start.minute) == (18, 0)
    assert (end - start).total_seconds() == 4 * 3600

    start, _ = gig_window({**GIG, "call_time": None}, TZ)
    assert start.hour == 20


def test_gig_window_all_day_and_missing_date():
    start, end = gig_window({"date": "2026-03-14"}, TZ)
    assert (start.hour, end.day) == (0, 15)
    assert gig_window({"title": "No date"}, TZ) == (None, None)


# ---------- .ics ----------
def test_build_gig_ics_timed_event():
    filename, data = build_gig_ics(GIG, url="https://gigs.example/p/jazz", tz=TZ)
    text = data.decode("utf-8")
    assert filename == "Jazz_Night-20260314.ics"
    assert "METHOD:PUBLISH" in text
    assert "UID:gigpack-g1@gigpack" in text
    assert f"DTSTART;TZID={TZ}:20260314T180000" in text
    assert f"DTEND;TZID={TZ}:20260314T220000" in text
    assert "LOCATION:Blue Room | 1 Main St" in text
    assert "URL:https://gigs.example/p/jazz" in text
    assert "STATUS:CONFIRMED" in text
    assert text.endswith("END:VCALENDAR\r\n")


def test_build_gig_ics_all_day_escaped_and_tentative():
    gig = {"id": "g2", "title": "Jazz, Blues; Night", "date": "2026-03-14", "status": "draft"}
    _, data = build_gig_ics(gig, tz=TZ)
    text = data.decode("utf-8")
    assert "DTSTART;VALUE=DATE:20260314" in text
    assert "DTEND;VALUE=DATE:20260315" in text
    assert "SUMMARY:Jazz\\, Blues\\; Night" in text
    assert "STATUS:TENTATIVE" in text


def test_build_gig_ics_requires_date():
    with pytest.raises(ValueError):
        build_gig_ics({"title": "x"}, tz=TZ)


# ---------- Google Calendar ----------
def test_compose_event_body():
    body = compose_event_body(GIG, "g1", tz=TZ)
    assert body["summary"] == "Jazz Night"
    assert body["start"]["dateTime"].startswith("2026-03-14T18:00:00")
    assert body["start"]["timeZone"] == TZ
    assert body["extendedProperties"] == {"private": {"gig_id": "g1"}}
    assert body["attendees"] == [{"email": "sam@example.com"}]
    assert "Load in" in body["description"]


def test_compose_event_body_all_day_without_attendees():
    body = compose_event_body({"title": "Rehearsal", "date": "2026-03-14"}, "g9", tz=TZ)
    assert body["start"] == {"date": "2026-03-14"}
    assert body["end"] == {"date": "2026-03-15"}
    assert "attendees" not in body


class _Call:
    def __init__(self, result=None, error=None):
        self.result, self.error = result, error

    def execute(self):
        if self.error:
            raise self.error
        return self.result


class FakeEvents:
    def __init__(self, existing=None):
        self.existing = existing
        self.calls = []

    def list(self, **kw):
        self.calls.append(("list", kw))
        return _Call({"items": [self.existing] if self.existing else []})

    def insert(self, calendarId, body):
        self.calls.append(("insert", calendarId, body))
        return _Call({"id": "ev-new", "summary": body["summary"]})

    def update(self, calendarId, eventId, body):
        self.calls.append(("update", calendarId, eventId))
        return _Call({"id": eventId, "summary": body["summary"]})

    def patch(self, calendarId, eventId, body, sendUpdates):
        self.calls.append(("patch", eventId, body, sendUpdates))
        return _Call({"id": eventId})

    def delete(self, calendarId, eventId, sendUpdates):
        self.calls.append(("delete", eventId, sendUpdates))
        return _Call({})


class FakeService:
    def __init__(self, events):
        self._events = events

    def events(self):
        return self._events


@pytest.fixture
def calendar(monkeypatch):
    events = FakeEvents()
    monkeypatch.delenv("GCAL_CALENDAR", raising=False)
    monkeypatch.setenv("GIGPACK_TIMEZONE", TZ)
    monkeypatch.setattr(calendar_utils, "_get_gcal_service", lambda: FakeService(events))
    monkeypatch.setattr(calendar_utils, "calendar_enabled", lambda: True)
    return events


def test_upsert_creates_then_updates(calendar):
    res = upsert_gig_calendar_event(GIG)
    assert res == {"action": "created", "eventId": "ev-new", "calendarId": "primary", "summary": "Jazz Night"}
    assert calendar.calls[0][1]["privateExtendedProperty"] == "gig_id=g1"

    calendar.existing = {"id": "ev-new"}
    res = upsert_gig_calendar_event(GIG)
    assert res["action"] == "updated"


def test_upsert_reports_stage_on_failure(calendar, monkeypatch):
    assert upsert_gig_calendar_event({"title": "no id"})["stage"] == "args"
    assert upsert_gig_calendar_event({"id": "g1", "title": "no date"})["stage"] == "compose"

    def broken():
        raise RuntimeError("refresh failed")

    monkeypatch.setattr(calendar_utils, "_get_gcal_service", broken)
    res = upsert_gig_calendar_event(GIG)
    assert res["stage"] == "auth" and "refresh failed" in res["error"]


def test_cancel_role_events_removes_attendees(calendar):
    calendar.existing = {"id": "ev1", "attendees": [{"email": "sam@example.com"}, {"email": "kim@example.com"}]}
    res = cancel_role_calendar_events("g1", ["Kim@Example.com"])
    assert res["action"] == "attendees_removed" and res["removed"] == 1
    patch = [c for c in calendar.calls if c[0] == "patch"][0]
    assert patch[2] == {"attendees": [{"email": "sam@example.com"}]}
    assert patch[3] == "all"


def test_cancel_role_events_noop_cases(calendar):
    assert cancel_role_calendar_events("g1", []) == {"action": "noop"}
    assert cancel_role_calendar_events("g1", ["kim@example.com"])["action"] == "noop"


def test_cancel_gig_events(calendar):
    assert cancel_gig_calendar_events("g1")["action"] == "noop"
    calendar.existing = {"id": "ev1"}
    res = cancel_gig_calendar_events("g1")
    assert res == {"action": "deleted", "eventId": "ev1", "calendarId": "primary"}


def test_calendar_not_configured_is_skipped(monkeypatch):
    monkeypatch.setattr(calendar_utils, "calendar_enabled", lambda: False)
    assert cancel_gig_calendar_events("g1")["action"] == "skipped"
    assert cancel_role_calendar_events("g1", ["a@x"])["action"] == "skipped"
