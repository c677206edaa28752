from datetime import date, timedelta

from fastapi.testclient import TestClient

BASE = date(2025, 9, 1)


def _put(client: TestClient, headers, day: date, sunrise="06:00", sunset="18:30", **extra):
    return client.put(
        f"/api/daylight/{day.isoformat()}",
        json={"sunrise_time": sunrise, "sunset_time": sunset, **extra},
        headers=headers,
    )


def test_upsert_creates_then_updates(client: TestClient, admin_headers, user_headers):
    r = _put(client, admin_headers, BASE, "06:01", "18:30:15")
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "Daylight data created successfully"
    row = r.json()["daylight"]
    assert (row["sunrise_time"], row["sunset_time"], row["timezone"]) == ("06:01:00", "18:30:15", "Asia/Kolkata")

    r = _put(client, admin_headers, BASE, "06:05", "18:25", timezone="UTC", notes="corrected")
    assert r.json()["message"] == "Daylight data updated successfully"

    r = client.get(f"/api/daylight/{BASE.isoformat()}", headers=user_headers)
    assert r.status_code == 200
    row = r.json()["daylight"]
    assert (row["sunrise_time"], row["timezone"], row["notes"]) == ("06:05:00", "UTC", "corrected")


def test_retention_keeps_seven_most_recent(client: TestClient, admin_headers):
    for offset in range(8):
        assert _put(client, admin_headers, BASE + timedelta(days=offset)).status_code == 200

    r = client.get("/api/daylight/admin/all", headers=admin_headers)
    dates = [row["date"] for row in r.json()["daylight"]]
    assert dates == [(BASE + timedelta(days=offset)).isoformat() for offset in range(1, 8)]


def test_default_listing_is_newest_seven_descending(client: TestClient, admin_headers, user_headers):
    for offset in (3, 1, 2):
        _put(client, admin_headers, BASE + timedelta(days=offset))

    r = client.get("/api/daylight", headers=user_headers)
    assert [row["date"] for row in r.json()["daylight"]] == ["2025-09-04", "2025-09-03", "2025-09-02"]

    r = client.get("/api/daylight", params={"start_date": "2025-09-02", "end_date": "2025-09-03"}, headers=user_headers)
    assert [row["date"] for row in r.json()["daylight"]] == ["2025-09-02", "2025-09-03"]


def test_validation(client: TestClient, admin_headers, user_headers):
    r = _put(client, admin_headers, BASE, "19:00", "06:00")
    assert r.status_code == 400
    assert r.json()["message"] == "Sunrise time must be before sunset time"

    r = _put(client, admin_headers, BASE, "6 am", "18:00")
    assert r.status_code == 400

    r = _put(client, admin_headers, BASE, latitude=120)
    assert r.status_code == 400

    r = client.get("/api/daylight/01-09-2025", headers=user_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid date format. Use YYYY-MM-DD"

    r = client.get("/api/daylight/2025-09-30", headers=user_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Daylight data not found"


def test_writes_require_admin(client: TestClient, user_headers):
    assert _put(client, user_headers, BASE).status_code == 403
    assert client.delete("/api/daylight/all", headers=user_headers).status_code == 403


def test_bulk_upsert_is_all_or_nothing(client: TestClient, admin_headers):
    items = [
        {"date": (BASE + timedelta(days=i)).isoformat(), "sunrise_time": "06:00", "sunset_time": "18:00"}
        for i in range(3)
    ]
    r = client.put("/api/daylight/bulk", json={"daylight_data": items}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert [row["date"] for row in r.json()["daylight"]] == [i["date"] for i in items]

    bad = [*items, {"date": "2025-09-10", "sunrise_time": "20:00", "sunset_time": "06:00"}]
    r = client.put("/api/daylight/bulk", json={"daylight_data": bad}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["details"][0]["field"].startswith("daylight_data.3")

    r = client.get("/api/daylight/admin/all", headers=admin_headers)
    assert len(r.json()["daylight"]) == 3

    r = client.put("/api/daylight/bulk", json={"daylight_data": []}, headers=admin_headers)
    assert r.status_code == 400


def test_bulk_upsert_applies_retention(client: TestClient, admin_headers):
    items = [
        {"date": (BASE + timedelta(days=i)).isoformat(), "sunrise_time": "06:00", "sunset_time": "18:00"}
        for i in range(9)
    ]
    r = client.put("/api/daylight/bulk", json={"daylight_data": items}, headers=admin_headers)
    assert r.status_code == 200
    assert len(r.json()["daylight"]) == 7
    assert r.json()["daylight"][0]["date"] == "2025-09-03"


def test_delete_one_and_all(client: TestClient, admin_headers):
    for offset in range(3):
        _put(client, admin_headers, BASE + timedelta(days=offset))

    r = client.delete(f"/api/daylight/{BASE.isoformat()}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["deleted_daylight"]["date"] == BASE.isoformat()

    r = client.delete("/api/daylight/all", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["deleted_count"] == 2
    assert client.get("/api/daylight/admin/all", headers=admin_headers).json()["daylight"] == []
