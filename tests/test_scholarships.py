from datetime import datetime

import pytest


def _add(client, headers, **fields):
    payload = {"scholarshipName": "General Grant", "universityName": "State University"}
    payload.update(fields)
    r = client.post("/add-scholarship", json=payload, headers=headers)
    assert r.status_code == 200
    return r.json()["insertedId"]


def test_add_scholarship_records_poster_from_token(client, auth_headers):
    r = client.post(
        "/add-scholarship",
        json={
            "scholarshipName": "Global Merit",
            "universityName": "Oxford",
            "degree": "Masters",
            "applicationFees": 35.5,
            "applicationDeadline": "2025-03-01",
            "universityWorldRank": 3,
        },
        headers=auth_headers("admin@x.com"),
    )
    assert r.status_code == 200
    assert r.json()["acknowledged"] is True
    scholarship = client.get(f"/scholarship/{r.json()['insertedId']}").json()
    assert scholarship["scholarshipName"] == "Global Merit"
    assert scholarship["postedUserEmail"] == "admin@x.com"
    assert scholarship["applicationDeadline"] == "2025-03-01"
    assert scholarship["universityWorldRank"] == 3
    assert scholarship["postDate"]


def test_add_scholarship_requires_name_and_university(client, auth_headers):
    r = client.post("/add-scholarship", json={"degree": "PhD"}, headers=auth_headers())
    assert r.status_code == 422


def test_unknown_scholarship_returns_null(client):
    r = client.get("/scholarship/does-not-exist")
    assert r.status_code == 200
    assert r.json() is None


def test_pagination_windows_are_disjoint(client, auth_headers):
    headers = auth_headers()
    for i in range(25):
        _add(client, headers, scholarshipName=f"Grant {i}")

    first = client.get("/scholarships", params={"page": 0, "limit": 10}).json()
    second = client.get("/scholarships", params={"page": 1, "limit": 10}).json()
    third = client.get("/scholarships", params={"page": 2, "limit": 10}).json()

    assert len(first) == 10 and len(second) == 10 and len(third) == 5
    ids = [s["id"] for s in first + second + third]
    assert len(set(ids)) == 25


def test_listing_without_limit_returns_everything(client, auth_headers):
    headers = auth_headers()
    for i in range(3):
        _add(client, headers, scholarshipName=f"Grant {i}")
    assert len(client.get("/scholarships").json()) == 3


def test_negative_page_is_rejected(client):
    assert client.get("/scholarships", params={"page": -1}).status_code == 422


def test_search_matches_name_degree_or_university(client, auth_headers):
    headers = auth_headers()
    _add(client, headers, scholarshipName="Fulbright Award", universityName="Yale", degree="Masters")
    _add(client, headers, scholarshipName="Rhodes", universityName="Oxford", degree="PhD")
    _add(client, headers, scholarshipName="Chevening", universityName="Imperial College", degree="Bachelor")

    def names(term):
        r = client.get("/scholarships", params={"search": term})
        return sorted(s["scholarshipName"] for s in r.json())

    assert names("fulBRIGHT") == ["Fulbright Award"]
    assert names("phd") == ["Rhodes"]
    assert names("college") == ["Chevening"]
    assert names("o") == ["Chevening", "Rhodes"]
    assert names("zzz") == []


def test_search_treats_wildcards_literally(client, auth_headers):
    headers = auth_headers()
    _add(client, headers, scholarshipName="100% Tuition")
    _add(client, headers, scholarshipName="Partial")
    r = client.get("/scholarships", params={"search": "%"})
    assert [s["scholarshipName"] for s in r.json()] == ["100% Tuition"]


def test_total_scholarships(client, auth_headers):
    headers = auth_headers()
    _add(client, headers, scholarshipName="Alpha", degree="PhD")
    _add(client, headers, scholarshipName="Beta", degree="Masters")
    assert client.get("/total-scholarships").json() == {"count": 2}
    assert client.get("/total-scholarships", params={"search": "phd"}).json() == {"count": 1}


def test_top_scholarships_order_and_size(client, auth_headers):
    headers = auth_headers()
    rows = [
        (50, "2024-01-01T00:00:00"),
        (10, "2024-01-01T00:00:00"),
        (10, "2024-03-01T00:00:00"),
        (0, "2023-06-01T00:00:00"),
        (75, "2024-02-01T00:00:00"),
        (25, "2024-02-01T00:00:00"),
        (25, "2024-05-01T00:00:00"),
        (5, "2024-01-15T00:00:00"),
        (90, "2024-07-01T00:00:00"),
    ]
    for i, (fee, posted) in enumerate(rows):
        _add(client, headers, scholarshipName=f"S{i}", applicationFees=fee, postDate=posted)

    top = client.get("/top-scholarships").json()
    assert len(top) == 6
    for a, b in zip(top, top[1:]):
        assert a["applicationFees"] <= b["applicationFees"]
        if a["applicationFees"] == b["applicationFees"]:
            assert datetime.fromisoformat(a["postDate"]) >= datetime.fromisoformat(b["postDate"])
    assert [s["scholarshipName"] for s in top] == ["S3", "S7", "S2", "S1", "S6", "S5"]


def test_top_scholarships_with_few_rows(client, auth_headers):
    _add(client, auth_headers(), applicationFees=1)
    assert len(client.get("/top-scholarships").json()) == 1


def test_admin_listing_requires_token(client, auth_headers):
    _add(client, auth_headers())
    assert client.get("/scholarship-admin-access").status_code == 401
    r = client.get("/scholarship-admin-access", headers=auth_headers())
    assert len(r.json()) == 1


def test_update_scholarship_applies_whitelist(client, auth_headers):
    headers = auth_headers("owner@x.com")
    sid = _add(client, headers, scholarshipName="Old", applicationFees=10)
    r = client.put(
        f"/update-scholarship/{sid}",
        json={"scholarshipName": "New", "stipend": "Full", "postedUserEmail": "thief@x.com", "id": "other"},
        headers=headers,
    )
    assert r.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}
    updated = client.get(f"/scholarship/{sid}").json()
    assert updated["id"] == sid
    assert updated["scholarshipName"] == "New"
    assert updated["stipend"] == "Full"
    assert updated["applicationFees"] == 10
    assert updated["postedUserEmail"] == "owner@x.com"


def test_update_unknown_scholarship(client, auth_headers):
    r = client.put("/update-scholarship/nope", json={"stipend": "x"}, headers=auth_headers())
    assert r.json()["matchedCount"] == 0


@pytest.mark.parametrize("fee", [-1, "free"])
def test_update_scholarship_validates_fee(client, auth_headers, fee):
    sid = _add(client, auth_headers())
    r = client.put(f"/update-scholarship/{sid}", json={"applicationFees": fee}, headers=auth_headers())
    assert r.status_code == 422


@pytest.mark.parametrize("field", ["scholarshipName", "universityName", "applicationFees"])
def test_update_scholarship_rejects_null_required_fields(client, auth_headers, field):
    headers = auth_headers()
    sid = _add(client, headers, scholarshipName="Kept", universityName="Oxford", applicationFees=25)
    r = client.put(f"/update-scholarship/{sid}", json={field: None}, headers=headers)
    assert r.status_code == 422
    stored = client.get(f"/scholarship/{sid}").json()
    assert stored["scholarshipName"] == "Kept"
    assert stored["universityName"] == "Oxford"
    assert stored["applicationFees"] == 25


def test_delete_scholarship_keeps_reviews(client, auth_headers):
    headers = auth_headers()
    sid = _add(client, headers)
    client.post(f"/add-review/{sid}", json={"rating": 4}, headers=headers)
    r = client.delete(f"/delete-scholarship/{sid}", headers=headers)
    assert r.json() == {"acknowledged": True, "deletedCount": 1}
    assert client.get(f"/scholarship/{sid}").json() is None
    assert len(client.get(f"/reviews/{sid}", headers=headers).json()) == 1
