from gigpack.transforms import (
    setlist_text_from_structured,
    transform_contacts,
    transform_lineup,
    transform_materials,
    transform_packing_checklist,
    transform_schedule_items,
    transform_setlist_structured,
)


def test_schedule_sorted_with_missing_order_first():
    rows = [
        {"id": "b", "time": "19:00", "label": "Show", "sort_order": 2},
        {"id": "a", "time": "", "label": "Arrive", "sort_order": None},
        {"id": "c", "time": "18:00", "label": "Soundcheck", "sort_order": 1},
    ]
    out = transform_schedule_items(rows)
    assert [i["id"] for i in out] == ["a", "c", "b"]
    assert out[0]["time"] is None


def test_materials_unknown_kind_reads_back_as_other():
    out = transform_materials([{"id": "m", "label": "Demo", "url": "u", "kind": "mp3", "sort_order": 0}])
    assert out == [{"id": "m", "label": "Demo", "url": "u", "kind": "other"}]


def test_packing_and_contacts():
    assert transform_packing_checklist([{"id": "p", "label": "Stand", "sort_order": 0}]) == [
        {"id": "p", "label": "Stand"}
    ]
    (c,) = transform_contacts([{"id": "c", "label": "Venue", "name": "Pat", "phone": "", "email": "p@x"}])
    assert c["phone"] is None and c["email"] == "p@x"


def test_setlist_structured_groups_and_sorts_songs():
    sections = [
        {"id": "s2", "name": "Set 2", "sort_order": 1},
        {"id": "s1", "name": "Set 1", "sort_order": 0},
    ]
    items = [
        {"id": "i2", "section_id": "s1", "title": "Blue in Green", "sort_order": 1},
        {"id": "i1", "section_id": "s1", "title": "So What", "key": "Dm", "sort_order": 0, "reference_url": "yt"},
        {"id": "i3", "section_id": "s2", "title": "Freddie", "sort_order": 0},
    ]
    out = transform_setlist_structured(sections, items)
    assert [s["name"] for s in out] == ["Set 1", "Set 2"]
    assert [song["title"] for song in out[0]["songs"]] == ["So What", "Blue in Green"]
    assert out[0]["songs"][0]["referenceUrl"] == "yt"
    assert out[1]["songs"][0]["artist"] is None


def test_lineup_contact_details_from_profile_then_contact():
    roles = [
        {"id": "r1", "role_name": "Drums", "musician_name": "Sam", "musician_id": "u1", "sort_order": 1,
         "invitation_status": "accepted"},
        {"id": "r2", "role_name": "Bass", "musician_name": "Kim", "contact_id": "c1", "sort_order": 0,
         "invitation_status": "pending"},
        {"id": "r3", "role_name": "Keys", "musician_name": "Lee", "sort_order": 2},
    ]
    out = transform_lineup(
        roles,
        profiles_by_id={"u1": {"email": "sam@x", "phone": "1", "avatar_url": "a.png"}},
        profiles_by_name={"Lee": {"email": "lee@x"}},
        contacts_by_id={"c1": {"email": "kim@x", "phone": "2"}},
    )
    assert [m["gigRoleId"] for m in out] == ["r2", "r1", "r3"]
    kim, sam, lee = out
    assert (kim["email"], kim["phone"], kim["contactId"]) == ("kim@x", "2", "c1")
    assert (sam["email"], sam["avatarUrl"], sam["userId"]) == ("sam@x", "a.png", "u1")
    assert sam["invitationStatus"] == "accepted"
    assert lee["email"] == "lee@x"


def test_setlist_text_from_structured():
    sections = [
        {"name": "Set 1", "songs": [
            {"title": "So What", "artist": "Miles Davis", "key": "Dm", "tempo": "136"},
            {"title": "Blue in Green"},
        ]},
        {"name": "Set 2", "songs": [{"title": "Freddie", "key": "F"}]},
    ]
    assert setlist_text_from_structured(sections) == (
        "So What - Miles Davis | Dm 136 BPM\n"
        "Blue in Green\n"
        "Freddie | F"
    )
