from io import BytesIO

import pytest
from sqlalchemy.exc import OperationalError

API = "/api/v1"


def _register(client, email="a@x.com", password="secret123", full_name="Ada Lovelace"):
    return client.post(f"{API}/auth/register", json={"full_name": full_name, "email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _set_cookies(response):
    return {h.split("=", 1)[0]: h for h in response.headers.getlist("Set-Cookie")}


@pytest.fixture
def session_tokens(client):
    data = _register(client).get_json()["data"]
    return data["access_token"], data["refresh_token"]


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_register_returns_user_tokens_and_cookies(client):
    response = _register(client)
    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "User created successfully"
    user = body["data"]["user"]
    assert user["email"] == "a@x.com"
    assert "password" not in user and "password_hash" not in user
    assert "refresh_token_hash" not in user

    cookies = _set_cookies(response)
    assert "HttpOnly" in cookies["accessToken"]
    assert "HttpOnly" in cookies["refreshToken"]
    assert body["data"]["refresh_token"] in cookies["refreshToken"]


def test_register_validation_and_conflict(client):
    missing = client.post(f"{API}/auth/register", json={"email": "a@x.com", "password": "secret123"})
    assert missing.status_code == 422
    assert "full_name" in missing.get_json()["details"]

    assert _register(client).status_code == 201
    duplicate = _register(client, full_name="Other")
    assert duplicate.status_code == 409
    assert duplicate.get_json()["error"] == "CONFLICT"


def test_login_failures_are_uniform(client):
    _register(client)
    wrong_password = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "wrong"})
    unknown_email = client.post(f"{API}/auth/login", json={"email": "nobody@x.com", "password": "wrong"})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_json() == unknown_email.get_json()


def test_login_success(client):
    registered = _register(client).get_json()["data"]["user"]
    response = client.post(f"{API}/auth/login", json={"email": "A@x.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.get_json()["data"]["user"]["id"] == registered["id"]


def test_refresh_rotates_tokens(client, session_tokens):
    _, refresh_token = session_tokens
    response = client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 200
    rotated = response.get_json()["data"]["refresh_token"]
    assert rotated != refresh_token

    replay = client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})
    assert replay.status_code == 401


def test_refresh_rejects_non_object_body(client, session_tokens):
    response = client.post(f"{API}/auth/refresh", json=["x"])
    assert response.status_code == 422
    assert response.get_json()["error"] == "VALIDATION_ERROR"


def test_refresh_from_cookie(client, session_tokens):
    response = client.post(f"{API}/auth/refresh")
    assert response.status_code == 200


def test_logout_revokes_and_clears_cookies(client, session_tokens):
    access_token, refresh_token = session_tokens
    response = client.post(f"{API}/auth/logout", headers=_bearer(access_token))
    assert response.status_code == 200
    cookies = _set_cookies(response)
    assert "Expires=Thu, 01 Jan 1970" in cookies["accessToken"]
    assert "Expires=Thu, 01 Jan 1970" in cookies["refreshToken"]

    again = client.post(f"{API}/auth/logout", headers=_bearer(access_token))
    assert again.status_code == 200

    refresh = client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})
    assert refresh.status_code == 401


def test_protected_routes_need_access_token(client, session_tokens):
    _, refresh_token = session_tokens
    client.delete_cookie("accessToken")
    assert client.get(f"{API}/users/me").status_code == 401
    assert client.get(f"{API}/users/me", headers=_bearer(refresh_token)).status_code == 401
    assert client.get(f"{API}/users/me", headers=_bearer("garbage")).status_code == 401


def test_me_and_update(client, session_tokens):
    access_token, _ = session_tokens
    me = client.get(f"{API}/users/me", headers=_bearer(access_token))
    assert me.status_code == 200
    assert me.get_json()["data"]["full_name"] == "Ada Lovelace"

    updated = client.patch(
        f"{API}/users/me", json={"full_name": "Ada King", "email": "ada@x.com"}, headers=_bearer(access_token)
    )
    assert updated.status_code == 200
    assert updated.get_json()["data"]["email"] == "ada@x.com"

    incomplete = client.patch(f"{API}/users/me", json={"full_name": "Ada"}, headers=_bearer(access_token))
    assert incomplete.status_code == 422


def test_change_password_route(client, session_tokens):
    access_token, _ = session_tokens
    bad = client.post(
        f"{API}/auth/change-password",
        json={"old_password": "nope", "new_password": "newsecret1"},
        headers=_bearer(access_token),
    )
    assert bad.status_code == 401

    good = client.post(
        f"{API}/auth/change-password",
        json={"old_password": "secret123", "new_password": "newsecret1"},
        headers=_bearer(access_token),
    )
    assert good.status_code == 200
    login = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "newsecret1"})
    assert login.status_code == 200


def test_forgot_password_does_not_reveal_accounts(client, notifier, session_tokens):
    known = client.post(f"{API}/auth/forgot-password", json={"email": "a@x.com"})
    unknown = client.post(f"{API}/auth/forgot-password", json={"email": "ghost@x.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json()
    assert len(notifier.sent) == 1

    token = notifier.sent[0][1]
    reset = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "brandnew99"})
    assert reset.status_code == 200
    assert client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "brandnew99"}).status_code == 200


def test_forgot_password_requires_email(client):
    assert client.post(f"{API}/auth/forgot-password", json={}).status_code == 422


def test_profile_setup(client, session_tokens):
    access_token, _ = session_tokens
    response = client.post(
        f"{API}/profile",
        data={
            "avatar": (BytesIO(b"\x89PNG fake"), "me.png"),
            "description": "Mathematician",
            "github_link": "https://github.com/ada",
            "twitter_link": "",
        },
        headers=_bearer(access_token),
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    profile = response.get_json()["data"]
    assert profile["avatar"]["url"] == "https://media.test/avatars/test-1.png"
    assert profile["social_media"]["github"] == "https://github.com/ada"
    assert profile["social_media"]["twitter"] is None

    fetched = client.get(f"{API}/profile", headers=_bearer(access_token))
    assert fetched.get_json()["data"]["id"] == profile["id"]


def test_profile_setup_without_avatar(client, session_tokens):
    access_token, _ = session_tokens
    assert client.get(f"{API}/profile", headers=_bearer(access_token)).status_code == 404
    response = client.post(
        f"{API}/profile",
        data={"description": "no picture"},
        headers=_bearer(access_token),
        content_type="multipart/form-data",
    )
    assert response.status_code == 422
    assert response.get_json()["message"] == "Avatar file is required"


def test_profile_upload_failure(client, uploader, session_tokens):
    access_token, _ = session_tokens
    uploader.fail = True
    response = client.post(
        f"{API}/profile",
        data={"avatar": (BytesIO(b"x"), "me.png")},
        headers=_bearer(access_token),
        content_type="multipart/form-data",
    )
    assert response.status_code == 502


def test_internal_errors_hide_their_cause(client, store, monkeypatch):
    def broken(user_id, token_hash):
        raise OperationalError("UPDATE users", {}, Exception("secret db detail"))

    monkeypatch.setattr(store, "update_refresh_token", broken)
    response = _register(client)
    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "INTERNAL_ERROR"
    assert "secret db detail" not in response.get_data(as_text=True)
    assert "details" not in body
