import pytest

from scholarship_api.auth import issue_token


@pytest.fixture
def scholarship_id(client, auth_headers):
    r = client.post(
        "/add-scholarship",
        json={
            "scholarshipName": "Merit Award",
            "universityName": "Harvard",
            "scholarshipCategory": "Full fund",
            "subjectCategory": "Engineering",
            "applicationFees": 40,
            "serviceCharge": 5,
            "applicationDeadline": "2025-06-30",
        },
        headers=auth_headers("admin@x.com"),
    )
    return r.json()["insertedId"]


def _apply(client, headers, scholarship_id, **fields):
    payload = {"scholarshipId": scholarship_id, "phone": "555-0100", "gender": "Female", "sscResult": "5.00"}
    payload.update(fields)
    r = client.post("/applied-scholarships", json=payload, headers=headers)
    assert r.status_code == 200
    return r.json()["insertedId"]


def test_apply_starts_pending_and_copies_scholarship(client, auth_headers, scholarship_id):
    headers = auth_headers("student@x.com")
    app_id = _apply(client, headers, scholarship_id, userName="Sam")
    application = client.get(f"/applied-scholarship/{app_id}", headers=headers).json()
    assert application["status"] == "Pending"
    assert application["userEmail"] == "student@x.com"
    assert application["userName"] == "Sam"
    assert application["scholarshipName"] == "Merit Award"
    assert application["universityName"] == "Harvard"
    assert application["applicationFees"] == 40
    assert application["applicationDeadline"] == "2025-06-30"
    assert application["sscResult"] == "5.00"
    assert application["feedback"] is None


def test_apply_ignores_client_status(client, auth_headers, scholarship_id):
    headers = auth_headers("student@x.com")
    app_id = _apply(client, headers, scholarship_id, status="Completed")
    assert client.get(f"/applied-scholarship/{app_id}", headers=headers).json()["status"] == "Pending"


def test_apply_to_unknown_scholarship_is_stored(client, auth_headers):
    headers = auth_headers("student@x.com")
    app_id = _apply(client, headers, "missing-id")
    application = client.get(f"/applied-scholarship/{app_id}", headers=headers).json()
    assert application["scholarshipId"] == "missing-id"
    assert application["scholarshipName"] is None


def test_my_applications(client, auth_headers, scholarship_id):
    _apply(client, auth_headers("student@x.com"), scholarship_id)
    _apply(client, auth_headers("other@x.com"), scholarship_id)
    r = client.get("/my-applications/student@x.com", headers=auth_headers("student@x.com"))
    assert [a["userEmail"] for a in r.json()] == ["student@x.com"]


def test_all_applications_sorting(client, auth_headers, scholarship_id):
    headers = auth_headers()
    early = _apply(client, headers, scholarship_id, applicationDeadline="2025-01-10", appliedDate="2024-01-01T00:00:00")
    late = _apply(client, headers, scholarship_id, applicationDeadline="2025-12-31", appliedDate="2024-05-01T00:00:00")

    by_deadline = client.get("/applied-scholarships", params={"date": "applicationDeadline"}, headers=headers).json()
    assert [a["id"] for a in by_deadline] == [early, late]

    by_applied = client.get("/applied-scholarships", params={"date": "appliedDate"}, headers=headers).json()
    assert [a["id"] for a in by_applied] == [late, early]


def test_all_applications_rejects_unknown_sort(client, auth_headers):
    r = client.get("/applied-scholarships", params={"date": "name"}, headers=auth_headers())
    assert r.status_code == 422


def test_update_application_keeps_status_and_feedback(client, auth_headers, scholarship_id):
    headers = auth_headers("student@x.com")
    app_id = _apply(client, headers, scholarship_id)
    r = client.patch(
        f"/update-application/{app_id}",
        json={"phone": "555-0199", "status": "Completed", "feedback": "self-approved"},
        headers=headers,
    )
    assert r.json()["modifiedCount"] == 1
    application = client.get(f"/applied-scholarship/{app_id}", headers=headers).json()
    assert application["phone"] == "555-0199"
    assert application["status"] == "Pending"
    assert application["feedback"] is None


def test_change_status_and_feedback(client, auth_headers, scholarship_id):
    app_id = _apply(client, auth_headers("student@x.com"), scholarship_id)
    admin = auth_headers("admin@x.com")

    r = client.patch(f"/change-status/{app_id}", json={"status": "Processing"}, headers=admin)
    assert r.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}
    r = client.patch(f"/add-feedback/{app_id}", json={"feedback": "Upload transcripts"}, headers=admin)
    assert r.json()["modifiedCount"] == 1

    application = client.get(f"/applied-scholarship/{app_id}", headers=admin).json()
    assert application["status"] == "Processing"
    assert application["feedback"] == "Upload transcripts"


def test_change_status_rejects_unknown_state(client, auth_headers, scholarship_id):
    app_id = _apply(client, auth_headers(), scholarship_id)
    r = client.patch(f"/change-status/{app_id}", json={"status": "Approved"}, headers=auth_headers())
    assert r.status_code == 422


def test_delete_application(client, auth_headers, scholarship_id):
    headers = auth_headers("student@x.com")
    app_id = _apply(client, headers, scholarship_id)
    assert client.delete(f"/delete-application/{app_id}", headers=headers).json()["deletedCount"] == 1
    assert client.get(f"/applied-scholarship/{app_id}", headers=headers).json() is None
    assert client.get("/my-applications/student@x.com", headers=headers).json() == []


def test_apply_without_applicant_email_is_refused(client, scholarship_id):
    headers = {"Authorization": f"Bearer {issue_token({'name': 'anonymous'})}"}
    r = client.post("/applied-scholarships", json={"scholarshipId": scholarship_id}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"message": "applicant email is required"}
