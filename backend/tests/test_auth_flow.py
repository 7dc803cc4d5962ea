from datetime import datetime, timedelta, timezone

from jose import jwt

from conftest import count_users
from health_assistant.services.auth_service import AuthService


def register(client, email="User@Test.com", password="longenough1"):
    return client.post("/register", json={"email": email, "password": password})


def test_register_normalizes_email_and_derives_name(client):
    res = register(client)
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "user@test.com"
    assert body["user"]["name"] == "User"
    assert isinstance(body["user"]["id"], int)
    assert "passwordHash" not in body["user"] and "password_hash" not in body["user"]


def test_register_sets_session_cookie(client):
    res = register(client)
    cookie = res.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "HttpOnly" in cookie
    assert "samesite=strict" in cookie.lower()
    assert "Max-Age=604800" in cookie
    assert "Secure" not in cookie
    assert res.cookies.get("token") == res.json()["token"]


def test_register_accepts_form_body(client):
    res = client.post("/register", data={"email": "form@test.com", "password": "longenough1"})
    assert res.status_code == 201
    assert res.json()["user"]["name"] == "Form"


def test_register_short_password_creates_nothing(client, settings):
    res = register(client, password="short")
    assert res.status_code == 400
    assert res.json() == {"message": "Password must be at least 8 characters"}
    assert count_users(settings) == 0


def test_register_requires_email_and_password(client):
    assert client.post("/register", json={"email": "a@b.com"}).status_code == 400
    assert client.post("/register", json={"password": "longenough1"}).status_code == 400
    res = client.post("/register", json={})
    assert res.json() == {"message": "Email and password are required"}


def test_duplicate_email_is_rejected_case_insensitively(client, settings):
    assert register(client, email="dup@test.com").status_code == 201
    res = register(client, email="  DUP@Test.com ")
    assert res.status_code == 400
    assert res.json() == {"message": "Email already in use"}
    assert count_users(settings) == 1


def test_login_returns_token_for_the_user(client, settings):
    user = register(client).json()["user"]

    res = client.post("/login", json={"email": "USER@test.com", "password": "longenough1"})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["user"] == user

    claims = jwt.decode(body["token"], settings.secret_key, algorithms=[settings.algorithm])
    assert claims["userId"] == user["id"]
    assert claims["email"] == "user@test.com"
    expires = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    now = datetime.now(timezone.utc)
    assert now + timedelta(days=6, hours=23) < expires <= now + timedelta(days=7, minutes=1)
    assert res.cookies.get("token") == body["token"]


def test_login_failures_do_not_reveal_which_part_was_wrong(client):
    register(client)
    wrong_password = client.post("/login", json={"email": "user@test.com", "password": "not-the-one"})
    unknown_email = client.post("/login", json={"email": "ghost@test.com", "password": "longenough1"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"message": "Invalid email or password"}


def test_login_requires_both_fields(client):
    res = client.post("/login", data={"email": "user@test.com"})
    assert res.status_code == 400


def test_logout_clears_cookie(client):
    register(client)
    res = client.post("/logout")
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Logged out successfully"}
    cookie = res.headers["set-cookie"]
    assert cookie.startswith('token=""') or cookie.startswith("token=;")
    assert "Max-Age=0" in cookie


def test_me_uses_session_cookie(client):
    register(client, email="jane@test.com")
    res = client.get("/me")
    assert res.status_code == 200
    body = res.json()
    assert body["email"] == "jane@test.com"
    assert body["name"] == "Jane"
    assert body["wellnessScore"] == 88
    assert body["scores"] == {"activity": 92, "sleep": 85, "stress": 79, "nutrition": 95}
    assert body["goals"] == [] and body["activities"] == [] and body["medications"] == []


def test_me_accepts_bearer_token(build_client):
    with build_client() as c:
        token = register(c).json()["token"]
        c.cookies.clear()
        res = c.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json()["email"] == "user@test.com"


def test_me_rejects_missing_or_forged_token(client, settings):
    assert client.get("/me").status_code == 401

    forged = jwt.encode({"userId": 1, "email": "x@y.z"}, "other-secret", algorithm=settings.algorithm)
    res = client.get("/me", headers={"Authorization": f"Bearer {forged}"})
    assert res.status_code == 401


def test_expired_token_is_rejected(client, settings):
    register(client)
    client.cookies.clear()
    past = datetime.now(timezone.utc) - timedelta(days=8)
    stale = jwt.encode(
        {"userId": 1, "email": "user@test.com", "iat": past, "exp": past + timedelta(days=7)},
        settings.secret_key,
        algorithm=settings.algorithm,
    )
    res = client.get("/me", headers={"Authorization": f"Bearer {stale}"})
    assert res.status_code == 401


def test_blank_email_counts_as_missing(client, settings):
    res = client.post("/register", json={"email": "   ", "password": "longenough1"})
    assert res.status_code == 400
    assert res.json() == {"message": "Email and password are required"}
    assert count_users(settings) == 0

    res = client.post("/login", json={"email": "   ", "password": "longenough1"})
    assert res.status_code == 400
    assert res.json() == {"message": "Email and password are required"}


def test_unexpected_failure_on_auth_route_is_generic_500(client, monkeypatch):
    async def broken_register(self, db, email, password):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(AuthService, "register", broken_register)
    res = client.post("/register", json={"email": "a@test.com", "password": "longenough1"})
    assert res.status_code == 500
    assert res.json() == {"message": "Server error"}
