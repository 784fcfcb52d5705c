from conftest import MONDAY


def post_entry(client, **overrides):
    payload = {
        "day": "Monday",
        "slot_id": 3,
        "section_id": "9A",
        "teacher_id": "T1",
        "subject": "Math",
        "room": "R101",
    }
    payload.update(overrides)
    return client.post("/api/timetable/entries", json=payload)


def test_directory_round_trip(seeded_client):
    response = seeded_client.get("/api/directory")
    assert response.status_code == 200
    assert [section["id"] for section in response.json()["sections"]][:2] == ["IV A", "IV B"]


def test_create_and_list_entries(seeded_client):
    created = post_entry(seeded_client)
    assert created.status_code == 201
    assert created.json()["id"] == "Monday:3:9A:base"

    listed = seeded_client.get("/api/timetable/slots/mon/3")
    assert [entry["section_id"] for entry in listed.json()] == ["9A"]


def test_validation_error_lists_fields(seeded_client):
    response = post_entry(seeded_client, teacher_id="", subject=" ")
    assert response.status_code == 422
    assert set(response.json()["details"]["fields"]) == {"teacher_id", "subject"}


def test_unknown_section_is_not_found(seeded_client):
    response = post_entry(seeded_client, section_id="12Z")
    assert response.status_code == 404
    assert "12Z" in response.json()["message"]


def test_conflict_then_acknowledge(seeded_client):
    post_entry(seeded_client, section_id="8B", room="R199", slot_id=2)

    rejected = post_entry(seeded_client, room="R200", slot_id=2)
    assert rejected.status_code == 409
    body = rejected.json()
    assert [entry["id"] for entry in body["details"]["conflicts"]] == ["Monday:2:8B:base"]
    assert body["details"]["report"][0]["conflict_type"] == "teacher_conflict"

    detected = seeded_client.post(
        "/api/conflicts/detect",
        json={"day": "Monday", "slot_id": 2, "section_id": "9A", "teacher_id": "T1", "subject": "Math"},
    )
    assert len(detected.json()["conflicts"]) == 1

    accepted = post_entry(seeded_client, room="R200", slot_id=2, acknowledge_conflicts=True)
    assert accepted.status_code == 201
    assert accepted.json()["clashing"] is True

    report = seeded_client.get("/api/conflicts").json()
    assert len(report["conflicts"]) == 1


def test_resolve_and_delete(seeded_client):
    post_entry(seeded_client)

    resolved = seeded_client.get(
        "/api/timetable/resolve",
        params={"entity_type": "STAFF", "entity_id": "t1", "day": "Monday", "slot_id": 3},
    )
    assert resolved.status_code == 200
    assert resolved.json()["free"] is False
    assert resolved.json()["entry"]["section_id"] == "9A"

    deleted = seeded_client.delete("/api/timetable/entries/Monday:3:9A:base")
    assert deleted.status_code == 200

    free = seeded_client.get(
        "/api/timetable/resolve",
        params={"entity_type": "CLASS", "entity_id": "9A", "day": "Monday", "slot_id": 3},
    )
    assert free.json() == {
        "entity_type": "CLASS",
        "entity_id": "9A",
        "day": "Monday",
        "slot_id": 3,
        "date": None,
        "free": True,
        "entry": None,
    }
    assert seeded_client.delete("/api/timetable/entries/Monday:3:9A:base").status_code == 404


def test_resolve_rejects_date_on_other_day(seeded_client):
    response = seeded_client.get(
        "/api/timetable/resolve",
        params={"entity_type": "CLASS", "entity_id": "9A", "day": "Tuesday", "slot_id": 3, "date": MONDAY},
    )
    assert response.status_code == 422
    assert response.json()["details"]["fields"] == ["date"]


def test_week_master_and_busy_views(seeded_client):
    post_entry(seeded_client, slot_id=2)

    week = seeded_client.post(
        "/api/timetable/week",
        json={"entity_type": "CLASS", "entity_id": "IV A", "slot_ids": [1, 2], "reference_date": "2024-05-08"},
    ).json()
    assert week["week_dates"]["Monday"] == MONDAY
    assert week["grid"]["Monday"]["1"]["source"] == "implicit"
    assert week["grid"]["Monday"]["2"] is None

    master = seeded_client.post(
        "/api/timetable/master",
        json={"section_ids": ["9A", "IV A"], "day": "Monday", "slot_ids": [2]},
    ).json()
    assert master["rows"]["9A"]["2"]["teacher_id"] == "T1"
    assert master["rows"]["IV A"]["2"] is None

    busy = seeded_client.get("/api/timetable/busy-teachers", params={"day": "Monday", "slot_id": 1})
    assert busy.json() == ["T3", "T5"]


def test_move_entry(seeded_client):
    post_entry(seeded_client, slot_id=2)

    response = seeded_client.post(
        "/api/timetable/move",
        json={
            "entity_type": "CLASS",
            "entity_id": "9A",
            "source": {"day": "Monday", "slot_id": 2},
            "target": {"day": "Tuesday", "slot_id": 4},
        },
    )
    assert response.status_code == 200
    assert [entry["id"] for entry in response.json()["moved"]] == ["Tuesday:4:9A:base"]


def test_engine_reloads_from_database(seeded_client):
    post_entry(seeded_client)
    seeded_client.app.state.timetable_engine = None

    resolved = seeded_client.get(
        "/api/timetable/resolve",
        params={"entity_type": "CLASS", "entity_id": "IV A", "day": "Monday", "slot_id": 1},
    )
    assert resolved.json()["entry"]["teacher_id"] == "T3"
    listed = seeded_client.get("/api/timetable/slots/Monday/3")
    assert [entry["id"] for entry in listed.json()] == ["Monday:3:9A:base"]
