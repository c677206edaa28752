from datetime import UTC, datetime, timedelta

import jwt
from fastapi.testclient import TestClient

from timings_service.config import get_settings
from timings_service.models.users import User, UserRole
from timings_service.security import create_access_token


def test_register_returns_user_and_token(client: TestClient):
    r = client.post(
        "/api/auth/register",
        json={"email": "New.User@DVS.com", "password": "secret1", "name": "  New User  "},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["email"] == "new.user@dvs.com"
    assert body["user"]["name"] == "New User"
    assert body["user"]["role"] == "user"
    assert body["token"]
    assert "password_hash" not in body["user"]


def test_register_duplicate_email_rejected(client: TestClient, register_user):
    register_user(email="dup@dvs.com")
    r = client.post("/api/auth/register", json={"email": "dup@dvs.com", "password": "secret1", "name": "Again"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"


def test_register_validation_errors(client: TestClient):
    r = client.post("/api/auth/register", json={"email": "not-an-email", "password": "123", "name": "A"})
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "Validation failed"
    fields = {d["field"] for d in body["details"]}
    assert {"email", "password", "name"} <= fields


def test_login_token_matches_me(client: TestClient, register_user):
    registered = register_user(email="me@dvs.com", password="secret1")
    r = client.post("/api/auth/login", json={"email": "me@dvs.com", "password": "secret1"})
    assert r.status_code == 200
    token = r.json()["token"]

    claims = jwt.decode(token, get_settings().JWT_SECRET, algorithms=["HS256"])
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == claims["userId"] == registered["user"]["id"]
    assert claims["sub"] == str(registered["user"]["id"])
    assert claims["role"] == "user"


def test_login_wrong_password(client: TestClient, register_user):
    register_user(email="me@dvs.com", password="secret1")
    r = client.post("/api/auth/login", json={"email": "me@dvs.com", "password": "wrong-password"})
    assert r.status_code == 401
    body = r.json()
    assert body["error"] == "Invalid credentials"
    assert "token" not in body


def test_me_requires_token(client: TestClient):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json() == {"error": "Access denied", "message": "No token provided"}

    r = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"


def test_expired_token_rejected(client: TestClient, register_user):
    user = register_user()["user"]
    stale = User(id=user["id"], email=user["email"], role=UserRole.USER, name=user["name"])
    token = create_access_token(stale, get_settings(), now=datetime.now(UTC) - timedelta(days=30))
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "Token expired"


def test_token_for_deleted_user(client: TestClient, admin_headers, register_user):
    registered = register_user(email="gone@dvs.com")
    r = client.delete(f"/api/users/{registered['user']['id']}", headers=admin_headers)
    assert r.status_code == 200
    r = client.get("/api/auth/me", headers=registered["headers"])
    assert r.status_code == 401
    assert r.json()["message"] == "User not found"


def test_logout(client: TestClient, user_headers):
    r = client.post("/api/auth/logout", headers=user_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Logout successful"


def test_bootstrap_admin_can_log_in(client: TestClient, admin_headers):
    r = client.get("/api/auth/me", headers=admin_headers)
    assert r.json()["user"]["role"] == "admin"
