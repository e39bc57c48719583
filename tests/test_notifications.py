from postgrest.exceptions import APIError

from gigpack.notifications import (
    UPDATE_MESSAGE,
    create_notifications,
    detect_changes_and_notify,
    important_fields_changed,
    invitation_notification,
    list_notifications,
    mark_notification_read,
    notify_status_change,
    send_invitation_notifications,
)

BEFORE = {
    "title": "Jazz Night",
    "date": "2026-03-14T00:00:00.000Z",
    "call_time": "18:00",
    "on_stage_time": "20:00",
    "venue_name": None,
    "location_name": "Blue Room",
    "venue_address": None,
    "location_address": "1 Main St",
}


def test_invitation_notification_text():
    row = invitation_notification("g1", None, {"musician_id": "u1", "role_name": None, "id": "r1"})
    assert row == {
        "user_id": "u1",
        "type": "invitation_received",
        "title": "Invitation: New Gig",
        "message": "You've been invited as a team member",
        "link": "/gigs/g1/pack",
        "gig_id": "g1",
        "gig_role_id": "r1",
    }
    named = invitation_notification("g1", "Jazz Night", {"musician_id": "u1", "role_name": "Drums"})
    assert named["title"] == "Invitation: Jazz Night"
    assert named["message"] == "You've been invited as Drums"


def test_create_notifications_skips_existing_rows_only(sb):
    sb.seed("notifications", {"user_id": "u1", "gig_id": "g1", "type": "gig_updated", "message": "old"})
    written = create_notifications(sb, [
        {"user_id": "u1", "gig_id": "g1", "type": "gig_updated", "message": "new"},
        {"user_id": "u2", "gig_id": "g1", "type": "gig_updated", "message": "new"},
    ])
    assert written == 1
    assert [r["message"] for r in sb.rows("notifications", user_id="u1")] == ["old"]
    assert [r["message"] for r in sb.rows("notifications", user_id="u2")] == ["new"]


def test_status_change_reaches_members_without_a_prior_notification(sb):
    sb.seed("gig_roles",
            {"id": "ra", "gig_id": "g1", "musician_id": "A", "invitation_status": "accepted"},
            {"id": "rb", "gig_id": "g1", "musician_id": "B", "invitation_status": "accepted"})
    sb.seed("notifications", {"user_id": "A", "gig_id": "g1", "type": "gig_updated"})
    assert notify_status_change(sb, "g1", "Gig", None, "confirmed") == 1
    assert len(sb.rows("notifications", user_id="A")) == 1
    assert len(sb.rows("notifications", user_id="B", type="gig_updated")) == 1


def test_create_notifications_logs_other_failures(sb, caplog):
    sb.failures[("notifications", "upsert")] = APIError({"code": "42501", "message": "permission denied"})
    assert create_notifications(sb, [{"user_id": "u1", "gig_id": "g1", "type": "gig_updated"}]) == 0
    assert "NOTIFY_INSERT_ERR" in caplog.text


def test_create_notifications_empty_is_noop(sb):
    assert create_notifications(sb, []) == 0
    assert sb.calls == []


def test_send_invitation_notifications_only_linked_members(sb):
    sent = send_invitation_notifications(sb, "g1", [
        {"role": "Drums", "name": "Sam", "userId": "u-sam", "gigRoleId": "r1"},
        {"role": "Bass", "name": "Kim"},
        {"role": "Keys", "linkedUserId": "u-lee"},
    ], "Jazz Night")
    assert sent == 2
    assert sorted(n["user_id"] for n in sb.rows("notifications")) == ["u-lee", "u-sam"]


def test_important_fields_changed_compares_both_venue_columns():
    same = {"title": "Jazz Night", "call_time": "18:00", "venue_name": "Blue Room", "venue_address": "1 Main St"}
    assert important_fields_changed(BEFORE, same, "2026-03-14T00:00:00.000Z") == []


def test_important_fields_changed_detects_each_field():
    data = {
        "title": "Jazz Night II",
        "call_time": "17:30",
        "on_stage_time": "21:00",
        "venue_name": "Red Room",
        "venue_address": "2 Main St",
    }
    assert important_fields_changed(BEFORE, data, "2026-03-15T00:00:00.000Z") == [
        "title", "date", "call_time", "on_stage_time", "venue_name", "venue_address",
    ]


def test_important_fields_changed_ignores_empty_submissions_and_time_of_day():
    data = {"title": "", "call_time": None}
    assert important_fields_changed(BEFORE, data, "2026-03-14T22:00:00+00:00") == []
    assert important_fields_changed(None, {"title": "x"}, None) == []


def _seed_roles(sb):
    sb.seed(
        "gig_roles",
        {"id": "r1", "gig_id": "g1", "musician_id": "u-sam", "invitation_status": "accepted"},
        {"id": "r2", "gig_id": "g1", "musician_id": "u-kim", "invitation_status": "pending"},
        {"id": "r3", "gig_id": "g1", "musician_id": None, "invitation_status": "invited"},
        {"id": "r4", "gig_id": "g1", "musician_id": "u-lee", "invitation_status": "declined"},
    )


def test_detect_changes_and_notify_skips_pending_and_unlinked(sb):
    _seed_roles(sb)
    changed = detect_changes_and_notify(sb, "g1", BEFORE, {"call_time": "17:00"}, None)
    assert changed == ["call_time"]
    notes = sb.rows("notifications")
    assert sorted(n["user_id"] for n in notes) == ["u-lee", "u-sam"]
    assert all(n["type"] == "gig_updated" and n["message"] == UPDATE_MESSAGE for n in notes)


def test_detect_changes_without_changes_sends_nothing(sb):
    _seed_roles(sb)
    assert detect_changes_and_notify(sb, "g1", BEFORE, {"title": "Jazz Night"}, None) == []
    assert sb.rows("notifications") == []


def test_notify_status_change(sb):
    _seed_roles(sb)
    assert notify_status_change(sb, "g1", "Jazz Night", None, "draft") == 0
    assert notify_status_change(sb, "g1", "Jazz Night", None, "confirmed") == 2
    assert {n["type"] for n in sb.rows("notifications")} == {"gig_updated"}
    assert notify_status_change(sb, "g1", "Jazz Night", None, "cancelled") == 2
    cancelled = sb.rows("notifications", type="gig_cancelled")
    assert sorted(n["user_id"] for n in cancelled) == ["u-lee", "u-sam"]


def test_list_and_mark_read(sb):
    sb.seed(
        "notifications",
        {"id": "n1", "user_id": "u1", "created_at": "2026-01-01", "read_at": None},
        {"id": "n2", "user_id": "u1", "created_at": "2026-01-02", "read_at": None},
        {"id": "n3", "user_id": "u2", "created_at": "2026-01-03", "read_at": None},
    )
    assert [n["id"] for n in list_notifications(sb, "u1")] == ["n2", "n1"]

    mark_notification_read(sb, "n2")

    assert [n["id"] for n in list_notifications(sb, "u1", unread_only=True)] == ["n1"]
    assert sb.rows("notifications", id="n2")[0]["read_at"]
