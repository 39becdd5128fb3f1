# test/test_invigilation_api.py
from conftest import register_and_login


def _duty(refs, **overrides):
    payload = {
        "examiner_id": refs["examiner_id"],
        "school_id": refs["school_id"],
        "subject_id": refs["subject_id"],
        "exam_date": "2025-03-05",
        "exam_session": "Morning",
    }
    payload.update(overrides)
    return payload


def test_invigilation_crud(client, coordinator_headers, reference_data):
    r = client.post("/api/invigilation", json=_duty(reference_data, exam_date="2025-03-07", exam_session="Afternoon"),
                    headers=coordinator_headers)
    assert r.status_code == 201, r.text
    later_id = r.json()["assignment_id"]

    r = client.post("/api/invigilation", json=_duty(reference_data), headers=coordinator_headers)
    assert r.status_code == 201, r.text
    first_id = r.json()["assignment_id"]
    assert r.json()["exam_date"] == "2025-03-05"

    r = client.get(f"/api/invigilation/examiner/{reference_data['examiner_id']}", headers=coordinator_headers)
    assert r.status_code == 200
    assert [row["assignment_id"] for row in r.json()] == [first_id, later_id]
    assert r.json()[0]["school_name"]

    r = client.put(f"/api/invigilation/{first_id}", json={"exam_session": "Afternoon", "exam_date": "2025-03-10"},
                   headers=coordinator_headers)
    assert r.status_code == 200, r.text
    assert r.json()["exam_session"] == "Afternoon"
    assert r.json()["exam_date"] == "2025-03-10"
    assert r.json()["examiner_id"] == reference_data["examiner_id"]

    r = client.delete(f"/api/invigilation/{first_id}", headers=coordinator_headers)
    assert r.status_code == 200

    r = client.get(f"/api/invigilation/school/{reference_data['school_id']}", headers=coordinator_headers)
    assert [row["assignment_id"] for row in r.json()] == [later_id]

    r = client.delete(f"/api/invigilation/{first_id}", headers=coordinator_headers)
    assert r.status_code == 404


def test_invigilation_rejects_bad_input(client, coordinator_headers, reference_data):
    r = client.post("/api/invigilation", json=_duty(reference_data, examiner_id=999999), headers=coordinator_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "UnknownExaminer"

    r = client.post("/api/invigilation", json=_duty(reference_data, exam_date="2025-02-30"), headers=coordinator_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidDate"
    assert r.json()["fields"] == ["exam_date"]

    r = client.post("/api/invigilation", json=_duty(reference_data, exam_session="Evening"), headers=coordinator_headers)
    assert r.status_code == 400
    assert r.json()["fields"] == ["exam_session"]

    r = client.put("/api/invigilation/999999", json={"exam_session": "Morning"}, headers=coordinator_headers)
    assert r.status_code == 404


def test_update_is_validated_as_a_whole(client, coordinator_headers, reference_data):
    r = client.post("/api/invigilation", json=_duty(reference_data), headers=coordinator_headers)
    assignment_id = r.json()["assignment_id"]

    r = client.put(f"/api/invigilation/{assignment_id}", json={"school_id": 999999}, headers=coordinator_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "UnknownSchool"

    r = client.get(f"/api/invigilation/school/{reference_data['school_id']}", headers=coordinator_headers)
    assert assignment_id in [row["assignment_id"] for row in r.json()]


def test_examiners_read_but_cannot_schedule(client, reference_data):
    headers = register_and_login(client, "examiner")
    assert client.get("/api/invigilation", headers=headers).status_code == 200
    r = client.post("/api/invigilation", json=_duty(reference_data), headers=headers)
    assert r.status_code == 403
    assert client.get("/api/invigilation").status_code == 401


def test_examiner_listing_is_idempotent(client, coordinator_headers, reference_data):
    first = client.get("/api/examiners", headers=coordinator_headers)
    second = client.get("/api/examiners", headers=coordinator_headers)
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()

    names = [row["examiner_name"] for row in first.json()]
    assert names == sorted(names)

    r = client.get(f"/api/examiners/school/{reference_data['school_id']}", headers=coordinator_headers)
    assert [row["examiner_id"] for row in r.json()] == [reference_data["examiner_id"]]
