import pytest
from fastapi.testclient import TestClient

from conftest import STRONG_PASSWORD, TEST_SECRET
from usermanager.core.app_factory import create_application
from usermanager.core.config import Settings

ADMIN_EMAIL = "admin@usermanager.com"
ADMIN_PASSWORD = "Admin@123"


@pytest.fixture
def client(tmp_path, monkeypatch, notifier):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("SESSION_TOKEN_SECRET", TEST_SECRET)
    monkeypatch.setenv("PASSWORD_HASH_ROUNDS", "4")
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("FRONTEND_BASE_URL", "https://app.example.com")
    app = create_application(Settings(), notifier=notifier)
    with TestClient(app) as test_client:
        yield test_client


def _login(client, email, password):
    return client.post("/api/account/login", json={"email": email, "password": password})


def _auth(client, email, password):
    resp = _login(client, email, password)
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _register(client, email, full_name="Test User", password=STRONG_PASSWORD):
    return client.post(
        "/api/account/register",
        json={"email": email, "full_name": full_name, "password": password},
    )


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_registration_to_login_walkthrough(client, notifier):
    resp = _register(client, "alice@example.com", "Alice")
    assert resp.status_code == 201
    body = resp.json()
    assert body["notification_sent"] is True
    assert body["user"]["email_confirmed"] is False
    assert body["user"]["is_approved"] is False
    alice_id = body["user"]["id"]

    resp = _login(client, "alice@example.com", STRONG_PASSWORD)
    assert resp.status_code == 403
    assert resp.json()["code"] == "email_not_confirmed"

    token = notifier.last_token("alice@example.com")
    resp = client.post("/api/account/confirm-email", json={"token": token})
    assert resp.status_code == 200
    assert resp.json()["email_confirmed"] is True

    resp = client.post("/api/account/confirm-email", json={"token": token})
    assert resp.status_code == 400
    assert resp.json()["code"] == "token_already_used"

    resp = _login(client, "alice@example.com", STRONG_PASSWORD)
    assert resp.status_code == 403
    assert resp.json()["code"] == "pending_approval"

    admin = _auth(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    pending = client.get("/api/admin/pending-users", headers=admin).json()
    assert [user["email"] for user in pending] == ["alice@example.com"]

    resp = client.post(f"/api/admin/users/{alice_id}/approve", headers=admin)
    assert resp.status_code == 200
    assert resp.json()["is_approved"] is True
    assert client.get("/api/admin/pending-users", headers=admin).json() == []

    resp = _login(client, "alice@example.com", STRONG_PASSWORD)
    assert resp.status_code == 200
    assert resp.json()["token_type"] == "bearer"
    assert resp.json()["user"]["roles"] == ["User"]

    resp = _login(client, "alice@example.com", "Wr0ng!pass")
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"


def test_unknown_email_login_matches_wrong_password(client):
    resp = _login(client, "ghost@example.com", STRONG_PASSWORD)
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"


def test_registration_errors(client):
    assert _register(client, "bob@example.com").status_code == 201

    resp = _register(client, "BOB@example.com")
    assert resp.status_code == 409
    assert resp.json()["code"] == "duplicate_email"

    resp = _register(client, "weak@example.com", password="weakpass")
    assert resp.status_code == 400
    assert resp.json()["code"] == "weak_password"
    assert "must contain a digit" in resp.json()["failures"]

    resp = _register(client, "not-an-email")
    assert resp.status_code == 422

    resp = _register(client, "")
    assert resp.status_code == 422


def test_registration_reports_failed_delivery(client, notifier):
    notifier.fail = True
    resp = _register(client, "carol@example.com")
    assert resp.status_code == 201
    assert resp.json()["notification_sent"] is False

    notifier.fail = False
    resp = client.post("/api/account/resend-confirmation", json={"email": "carol@example.com"})
    assert resp.status_code == 200
    token = notifier.last_token("carol@example.com")
    assert client.post("/api/account/confirm-email", json={"token": token}).status_code == 200


def test_admin_endpoints_require_staff(client, notifier):
    assert client.get("/api/admin/users").status_code == 401

    _register(client, "dan@example.com")
    client.post("/api/account/confirm-email", json={"token": notifier.last_token("dan@example.com")})
    admin = _auth(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    dan_id = client.get("/api/admin/pending-users", headers=admin).json()[0]["id"]
    client.post(f"/api/admin/users/{dan_id}/approve", headers=admin)

    dan = _auth(client, "dan@example.com", STRONG_PASSWORD)
    resp = client.get("/api/admin/users", headers=dan)
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"
    assert client.get("/api/account/me", headers=dan).json()["email"] == "dan@example.com"

    resp = client.post(f"/api/admin/users/{dan_id}/roles", json={"role": "manager"}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["roles"] == ["Manager", "User"]

    resp = client.get("/api/admin/users", headers=dan)
    assert resp.status_code == 200
    assert {user["email"] for user in resp.json()} == {ADMIN_EMAIL, "dan@example.com"}
    assert client.get("/api/admin/roles", headers=dan).json() == ["Admin", "Manager", "User"]

    resp = client.delete(f"/api/admin/users/{dan_id}/roles/Manager", headers=admin)
    assert resp.json()["roles"] == ["User"]
    assert client.get("/api/admin/users", headers=dan).status_code == 403


def test_admin_role_and_user_errors(client):
    admin = _auth(client, ADMIN_EMAIL, ADMIN_PASSWORD)

    resp = client.post("/api/admin/users/1/roles", json={"role": "Superuser"}, headers=admin)
    assert resp.status_code == 404
    assert resp.json()["code"] == "role_not_found"

    resp = client.post("/api/admin/users/9999/approve", headers=admin)
    assert resp.status_code == 404
    assert resp.json()["code"] == "user_not_found"


def test_password_reset_over_http(client, notifier):
    admin_headers = _auth(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert admin_headers

    resp = client.post("/api/account/forgot-password", json={"email": "nobody@example.com"})
    assert resp.status_code == 200
    assert notifier.sent == []

    resp = client.post("/api/account/forgot-password", json={"email": ADMIN_EMAIL})
    assert resp.status_code == 200
    token = notifier.last_token(ADMIN_EMAIL)

    resp = client.post(
        "/api/account/reset-password", json={"token": token, "new_password": "N3w@Admin"}
    )
    assert resp.status_code == 200

    assert _login(client, ADMIN_EMAIL, ADMIN_PASSWORD).status_code == 401
    assert _login(client, ADMIN_EMAIL, "N3w@Admin").status_code == 200

    resp = client.post(
        "/api/account/reset-password", json={"token": "bogus", "new_password": "N3w@Admin"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "token_invalid"


def test_bad_bearer_token_is_rejected(client):
    resp = client.get("/api/account/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
