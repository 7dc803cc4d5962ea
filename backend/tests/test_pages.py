import pytest

from health_assistant.api.routers.pages import HOME_PAGES


@pytest.mark.parametrize("path", HOME_PAGES)
def test_home_pages_for_anonymous_visitor(client, path):
    res = client.get(path)
    assert res.status_code == 200
    assert res.json() == {"page": "home", "user": None}


def test_home_page_knows_signed_in_user(client):
    user = client.post("/register", json={"email": "amy@test.com", "password": "longenough1"}).json()["user"]
    assert client.get("/dashboard").json() == {"page": "home", "user": user}


def test_bad_cookie_is_treated_as_anonymous(client):
    res = client.get("/", headers={"Cookie": "token=not-a-jwt"})
    assert res.json()["user"] is None


def test_chatbot_page_starts_with_empty_view(client):
    body = client.get("/chatbot").json()
    assert body["page"] == "chatbot"
    assert body["user"] is None
    assert body["chatReply"] == "" and body["error"] == "" and body["recommendations"] == []


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/db-health").json() == {"db": "ok", "result": 1}
