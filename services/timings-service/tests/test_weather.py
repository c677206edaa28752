from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy import update

from timings_service.models.daylight import Daylight
from timings_service.services.weather_service import is_fresh, to_local_clock


def test_fetch_converts_to_display_timezone_and_caches(client: TestClient, sun_api):
    r = client.get("/api/weather/daylight/2025-09-10")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Daylight data fetched successfully"
    data = body["data"]
    assert (data["sunrise_time"], data["sunset_time"]) == ("06:30:00", "18:15:00")
    assert data["timezone"] == "Asia/Kolkata"
    assert (data["latitude"], data["longitude"]) == (28.6139, 77.209)
    assert data["cached"] is False

    request = sun_api.calls[0]
    assert request.url.params["date"] == "2025-09-10"
    assert request.url.params["formatted"] == "0"

    r = client.get("/api/weather/daylight/2025-09-10")
    assert r.json()["data"]["cached"] is True
    assert len(sun_api.calls) == 1


def test_custom_coordinates_are_passed_through(client: TestClient, sun_api):
    r = client.get("/api/weather/daylight/2025-09-10", params={"lat": 19.076, "lng": 72.8777})
    assert r.status_code == 200
    assert sun_api.calls[0].url.params["lat"] == "19.076"
    assert r.json()["data"]["latitude"] == 19.076


def test_upstream_failure_is_500(client: TestClient, sun_api):
    sun_api.status = "INVALID_REQUEST"
    r = client.get("/api/weather/daylight/2025-09-10")
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to fetch daylight data"

    sun_api.status = "OK"
    sun_api.failing_dates.add("2025-09-11")
    assert client.get("/api/weather/daylight/2025-09-11").status_code == 500


def test_bad_date_is_400(client: TestClient):
    assert client.get("/api/weather/daylight/10-09-2025").status_code == 400


def test_range_reuses_rows_and_skips_failures(client: TestClient, sun_api):
    client.get("/api/weather/daylight/2025-09-10")
    sun_api.failing_dates.add("2025-09-12")
    calls_before = len(sun_api.calls)

    r = client.get("/api/weather/daylight/range", params={"start_date": "2025-09-10", "end_date": "2025-09-13"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["count"] == 3
    assert [d["date"] for d in body["data"]] == ["2025-09-10", "2025-09-11", "2025-09-13"]
    assert [d["cached"] for d in body["data"]] == [True, False, False]
    # 09-11, 09-12 (failed) and 09-13
    assert len(sun_api.calls) - calls_before == 3


def test_range_is_served_from_cache_on_repeat(client: TestClient, sun_api):
    params = {"start_date": "2025-09-01", "end_date": "2025-09-10"}
    first = client.get("/api/weather/daylight/range", params=params)
    assert first.json()["count"] == 10
    assert len(sun_api.calls) == 10

    second = client.get("/api/weather/daylight/range", params=params)
    assert second.status_code == 200
    assert [d["cached"] for d in second.json()["data"]] == [True] * 10
    assert len(sun_api.calls) == 10


def test_old_date_stays_cached_after_newer_fetches(client: TestClient, sun_api):
    for day in range(2, 10):
        client.get(f"/api/weather/daylight/2025-09-{day:02d}")
    client.get("/api/weather/daylight/2025-09-01")
    calls = len(sun_api.calls)

    r = client.get("/api/weather/daylight/2025-09-01")
    assert r.json()["data"]["cached"] is True
    assert len(sun_api.calls) == calls


def test_range_parameter_checks(client: TestClient):
    r = client.get("/api/weather/daylight/range", params={"start_date": "2025-09-10"})
    assert r.status_code == 400
    r = client.get("/api/weather/daylight/range", params={"start_date": "2025-01-01", "end_date": "2025-03-01"})
    assert r.status_code == 400
    r = client.get("/api/weather/daylight/range", params={"start_date": "2025-01-05", "end_date": "2025-01-01"})
    assert r.status_code == 400


def test_manual_put_requires_admin(client: TestClient, admin_headers, user_headers):
    payload = {"sunrise_time": "06:00", "sunset_time": "18:00"}
    assert client.put("/api/weather/daylight/2025-09-10", json=payload).status_code == 401
    assert client.put("/api/weather/daylight/2025-09-10", json=payload, headers=user_headers).status_code == 403
    r = client.put("/api/weather/daylight/2025-09-10", json=payload, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["daylight"]["sunrise_time"] == "06:00:00"


def test_freshness_window_and_clock_conversion():
    class Row:
        updated_at = datetime(2025, 9, 10, 6, 0)

    now = datetime(2025, 9, 10, 11, 59, tzinfo=UTC)
    assert is_fresh(Row(), now, timedelta(hours=6))
    assert not is_fresh(Row(), now + timedelta(minutes=2), timedelta(hours=6))
    assert to_local_clock(datetime(2025, 9, 10, 1, 0, 30, 500, tzinfo=UTC), "Asia/Kolkata").isoformat() == "06:30:30"


def test_stale_row_is_refetched(client: TestClient, sun_api):
    client.get("/api/weather/daylight/2025-09-10")

    async def age_rows() -> None:
        async with client.app.state.database.session() as db:
            await db.execute(update(Daylight).values(updated_at=datetime.now(UTC) - timedelta(hours=7)))
            await db.commit()

    client.portal.call(age_rows)
    r = client.get("/api/weather/daylight/2025-09-10")
    assert r.json()["data"]["cached"] is False
    assert len(sun_api.calls) == 2
