from fastapi.testclient import TestClient


def test_list_users_admin_only(client: TestClient, admin_headers, user_headers):
    r = client.get("/api/users", headers=user_headers)
    assert r.status_code == 403
    assert r.json()["message"] == "Admin privileges required"

    r = client.get("/api/users", headers=admin_headers)
    assert r.status_code == 200
    emails = [u["email"] for u in r.json()["users"]]
    # newest first
    assert emails == ["user@dvs.com", "admin@dvs.com"]


def test_user_can_read_and_update_self_but_not_others(client: TestClient, register_user):
    alice = register_user(email="alice@dvs.com", name="Alice")
    bob = register_user(email="bob@dvs.com", name="Bob")

    r = client.get(f"/api/users/{alice['user']['id']}", headers=alice["headers"])
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice"

    r = client.get(f"/api/users/{bob['user']['id']}", headers=alice["headers"])
    assert r.status_code == 403
    assert r.json()["message"] == "You can only access your own resources"

    r = client.put(
        f"/api/users/{alice['user']['id']}",
        json={"name": "Alice Cooper", "phone_number": "+91 99999 00000"},
        headers=alice["headers"],
    )
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice Cooper"
    assert r.json()["user"]["phone_number"] == "+91 99999 00000"


def test_role_change_requires_admin(client: TestClient, admin_headers, register_user):
    alice = register_user(email="alice@dvs.com")
    r = client.put(f"/api/users/{alice['user']['id']}", json={"role": "admin"}, headers=alice["headers"])
    assert r.status_code == 403

    r = client.put(f"/api/users/{alice['user']['id']}", json={"role": "admin"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["user"]["role"] == "admin"


def test_empty_update_rejected(client: TestClient, register_user):
    alice = register_user(email="alice@dvs.com")
    r = client.put(f"/api/users/{alice['user']['id']}", json={}, headers=alice["headers"])
    assert r.status_code == 400
    assert r.json()["error"] == "No updates provided"


def test_delete_user_rules(client: TestClient, admin_headers, register_user):
    me = client.get("/api/auth/me", headers=admin_headers).json()["user"]
    r = client.delete(f"/api/users/{me['id']}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete self"

    r = client.delete("/api/users/9999", headers=admin_headers)
    assert r.status_code == 404

    alice = register_user(email="alice@dvs.com")
    r = client.delete(f"/api/users/{alice['user']['id']}", headers=alice["headers"])
    assert r.status_code == 403
