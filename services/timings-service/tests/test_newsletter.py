import asyncio
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from timings_service.config import get_settings
from timings_service.services.newsletter_service import QUOTES, digest_subject, format_long_date, ordinal
from timings_service.throttle import Throttle


def _subscribe(client: TestClient, email: str):
    return client.post("/api/newsletter/subscribe", json={"email": email})


def test_subscribe_sends_welcome(client: TestClient, mailer):
    r = _subscribe(client, "Reader@DVS.com")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["subscriber"]["email"] == "reader@dvs.com"
    assert body["subscriber"]["is_active"] is True
    assert body["email_sent"] is True
    assert mailer.sent[0]["to"] == "reader@dvs.com"
    assert mailer.sent[0]["subject"] == "Welcome to DVS Daily Newsletter! 🌟"


def test_subscribe_twice_rejected(client: TestClient):
    assert _subscribe(client, "reader@dvs.com").status_code == 201
    r = _subscribe(client, "reader@dvs.com")
    assert r.status_code == 409
    assert r.json()["error"] == "Email already subscribed"


def test_welcome_failure_does_not_fail_subscription(client: TestClient, mailer):
    mailer.fail_for.add("reader@dvs.com")
    r = _subscribe(client, "reader@dvs.com")
    assert r.status_code == 201
    assert r.json()["email_sent"] is False


def test_unsubscribe_and_resubscribe(client: TestClient, admin_headers):
    r = client.post("/api/newsletter/unsubscribe", json={"email": "nobody@dvs.com"})
    assert r.status_code == 404
    assert r.json()["error"] == "Email not found"

    first = _subscribe(client, "reader@dvs.com").json()["subscriber"]
    assert client.post("/api/newsletter/unsubscribe", json={"email": "reader@dvs.com"}).status_code == 200
    assert client.get("/api/newsletter/subscribers", headers=admin_headers).json()["count"] == 0

    again = _subscribe(client, "reader@dvs.com")
    assert again.status_code == 201
    assert again.json()["subscriber"]["id"] == first["id"]
    assert again.json()["subscriber"]["unsubscribed_at"] is None


def test_admin_endpoints_require_admin(client: TestClient, user_headers):
    assert client.get("/api/newsletter/subscribers").status_code == 401
    assert client.get("/api/newsletter/subscribers", headers=user_headers).status_code == 403
    assert client.post("/api/newsletter/send-daily", headers=user_headers).status_code == 403
    assert client.get("/api/newsletter/preview", headers=user_headers).status_code == 403
    r = client.post("/api/newsletter/test-email", json={"email": "x@dvs.com"}, headers=user_headers)
    assert r.status_code == 403


def test_send_daily_without_subscribers(client: TestClient, admin_headers):
    r = client.post("/api/newsletter/send-daily", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "No active subscribers found"
    assert r.json()["data"]["subscriber_count"] == 0


def test_send_daily_reports_per_recipient(client: TestClient, admin_headers, mailer, make_category):
    today = get_settings().local_today()
    work = make_category("Work", "blue")
    retired = make_category("Retired", "amber")
    timing = client.post(
        "/api/good-timings",
        json={"day": today.strftime("%A"), "start_date": today.isoformat(), "end_date": today.isoformat()},
        headers=admin_headers,
    ).json()["good_timing"]
    for category, start, description in ((work, "09:00", "Deep work"), (retired, "11:00", "Hidden slot")):
        client.post(
            f"/api/good-timings/{timing['id']}/time-slots",
            json={"start_time": start, "end_time": "12:00", "category_id": category["id"], "description": description},
            headers=admin_headers,
        )
    client.put(f"/api/categories/{retired['id']}", json={"is_active": False}, headers=admin_headers)
    client.put(
        f"/api/daylight/{today.isoformat()}",
        json={"sunrise_time": "06:12", "sunset_time": "17:58"},
        headers=admin_headers,
    )

    for email in ("a@dvs.com", "b@dvs.com", "c@dvs.com"):
        _subscribe(client, email)
    mailer.sent.clear()
    mailer.fail_for.add("b@dvs.com")

    r = client.post("/api/newsletter/send-daily", headers=admin_headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert (data["subscriber_count"], data["emails_sent"], data["emails_failed"]) == (3, 2, 1)
    assert data["has_timings"] is True
    assert data["has_daylight"] is True
    assert data["subject"] == digest_subject(today)
    failed = [res for res in data["results"] if not res["success"]]
    assert [res["email"] for res in failed] == ["b@dvs.com"]
    assert failed[0]["error"]

    html = mailer.sent[0]["html"]
    assert "Deep work" in html
    assert "Hidden slot" not in html
    assert "06:12" in html


def test_preview_without_timings(client: TestClient, admin_headers):
    r = client.get("/api/newsletter/preview", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["timings"] == []
    assert body["daylight"] is None
    assert "No timings scheduled for today. Enjoy your free time!" in body["html"]
    assert body["quote"] in QUOTES


def test_test_email(client: TestClient, admin_headers, mailer):
    r = client.post("/api/newsletter/test-email", json={"email": "ops@dvs.com"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["message_id"]
    assert mailer.sent[-1]["subject"] == "DVS Email Test - Newsletter System"

    mailer.fail_for.add("ops@dvs.com")
    r = client.post("/api/newsletter/test-email", json={"email": "ops@dvs.com"}, headers=admin_headers)
    assert r.status_code == 500
    assert r.json()["error"] == "Failed to send test email"


def test_subject_formatting():
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 22, 23, 31)] == [
        "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "22nd", "23rd", "31st",
    ]
    assert format_long_date(date(2025, 10, 18)) == "Saturday, October 18th"
    assert digest_subject(date(2025, 9, 1)) == "Your Daily Good Timings - Monday, September 1st"


def test_throttle_spaces_calls():
    now = [0.0]
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        now[0] += seconds

    async def run() -> None:
        throttle = Throttle(0.5, clock=lambda: now[0], sleep=fake_sleep)
        await throttle.wait()
        now[0] += 0.2
        await throttle.wait()
        now[0] += timedelta(seconds=1).total_seconds()
        await throttle.wait()

    asyncio.run(run())
    assert sleeps == [pytest.approx(0.3)]
