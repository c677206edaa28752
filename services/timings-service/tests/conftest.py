import os
import sys
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

SERVICE_ROOT = Path(__file__).resolve().parents[1]
LIBS_ROOT = SERVICE_ROOT.parents[1] / "libs" / "backend-common"
for path in (SERVICE_ROOT, LIBS_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# importing timings_service.main builds a module-level app; keep it quiet and off the network
os.environ.setdefault("ENABLE_METRICS", "false")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DB_AUTO_CREATE", "true")

ADMIN_EMAIL = "admin@dvs.com"
ADMIN_PASSWORD = "admin123"


class FakeMailer:
    """Records outgoing messages; addresses in ``fail_for`` raise like a refusing relay."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail_for: set[str] = set()

    async def send(self, to: str, subject: str, html: str) -> str:
        if to in self.fail_for:
            raise RuntimeError(f"Recipient refused: {to}")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"<{len(self.sent)}@test.dvs.com>"


class SunApiStub:
    """Stand-in for sunrise-sunset.org behind an ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.failing_dates: set[str] = set()
        self.status = "OK"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        day = request.url.params.get("date")
        if day in self.failing_dates:
            return httpx.Response(503, text="unavailable")
        if self.status != "OK":
            return httpx.Response(200, json={"status": self.status, "results": ""})
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": {
                    # 06:30 and 18:15 in Asia/Kolkata
                    "sunrise": f"{day}T01:00:00+00:00",
                    "sunset": f"{day}T12:45:00+00:00",
                },
            },
        )


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def sun_api() -> SunApiStub:
    return SunApiStub()


@pytest.fixture()
def env(tmp_path, monkeypatch) -> Callable[..., None]:
    from timings_service.config import get_settings

    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'dvs_test.db'}",
        "APP_ENV": "test",
        "ENABLE_METRICS": "false",
        "BCRYPT_ROUNDS": "4",
        "RATE_LIMIT_MAX_REQUESTS": "10000",
        "BOOTSTRAP_ADMIN_EMAIL": ADMIN_EMAIL,
        "BOOTSTRAP_ADMIN_PASSWORD": ADMIN_PASSWORD,
        "MAIL_SEND_INTERVAL_SECONDS": "0",
        "WEATHER_FETCH_INTERVAL_SECONDS": "0",
        "JWT_SECRET": "test-secret",
    }

    def apply(**overrides: str) -> None:
        for key, value in {**values, **overrides}.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()

    apply()
    yield apply
    get_settings.cache_clear()


@pytest.fixture()
def make_client(env, mailer: FakeMailer, sun_api: SunApiStub):
    from timings_service.config import get_settings
    from timings_service.main import create_app

    clients: list[TestClient] = []

    def build(**overrides: str) -> TestClient:
        if overrides:
            env(**overrides)
        app = create_app(
            get_settings(),
            mailer=mailer,
            http_transport=httpx.MockTransport(sun_api.handler),
        )
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield build
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()


def _login(client: TestClient, email: str, password: str) -> dict[str, str]:
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture()
def admin_headers(client: TestClient) -> dict[str, str]:
    return _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture()
def register_user(client: TestClient):
    def register(email: str = "user@dvs.com", password: str = "user123", name: str = "Regular User") -> dict:
        r = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
        assert r.status_code == 201, r.text
        body = r.json()
        return {"user": body["user"], "headers": {"Authorization": f"Bearer {body['token']}"}}

    return register


@pytest.fixture()
def user_headers(register_user) -> dict[str, str]:
    return register_user()["headers"]


@pytest.fixture()
def make_category(client: TestClient, admin_headers: dict[str, str]):
    def create(name: str = "Work", color_token: str = "blue") -> dict:
        r = client.post(
            "/api/categories",
            json={"name": name, "color_token": color_token},
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()["category"]

    return create
