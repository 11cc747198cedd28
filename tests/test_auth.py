from urllib.parse import parse_qs, urlparse

import pytest

from boondit.app import db
from boondit.models import User
from boondit.services import oauth
from boondit.services.oauth import OAuthError
from conftest import CSRF, login


def _csrf(client):
    with client.session_transaction() as sess:
        sess["_csrf_token"] = CSRF


def test_register_creates_account_and_signs_in(app, client):
    _csrf(client)
    resp = client.post(
        "/auth/register",
        data={"email": "New@Example.com", "password": "longenough", "name": "Newbie", "csrf_token": CSRF},
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard/")
    user = User.query.filter_by(email="new@example.com").one()
    assert user.name == "Newbie"
    assert user.password_hash and user.password_hash != "longenough"
    with client.session_transaction() as sess:
        assert sess["user_id"] == user.id


def test_register_rejects_duplicates_and_short_passwords(app, client, make_user):
    make_user(email="taken@example.com")
    _csrf(client)
    resp = client.post(
        "/auth/register",
        data={"email": "taken@example.com", "password": "longenough", "name": "X", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert b"User already exists" in resp.data
    resp = client.post(
        "/auth/register",
        data={"email": "fresh@example.com", "password": "short", "name": "X", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert b"at least 8 characters" in resp.data
    assert User.query.count() == 1


def test_post_without_csrf_token_rejected(client):
    resp = client.post("/auth/signin", data={"email": "a@example.com", "password": "x"})
    assert resp.status_code == 400


def test_signin_success_and_next_redirect(app, client, make_user):
    make_user(email="ada@example.com", password="correct-horse")
    _csrf(client)
    resp = client.post(
        "/auth/signin",
        data={
            "email": "ada@example.com",
            "password": "correct-horse",
            "next": "/dashboard/profile",
            "csrf_token": CSRF,
        },
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard/profile")


def test_signin_ignores_offsite_next(app, client, make_user):
    make_user(email="ada@example.com", password="correct-horse")
    _csrf(client)
    resp = client.post(
        "/auth/signin",
        data={
            "email": "ada@example.com",
            "password": "correct-horse",
            "next": "//evil.example.com",
            "csrf_token": CSRF,
        },
    )
    assert resp.headers["Location"].endswith("/dashboard/")


def test_signin_wrong_password(app, client, make_user):
    make_user(email="ada@example.com", password="correct-horse")
    _csrf(client)
    resp = client.post(
        "/auth/signin",
        data={"email": "ada@example.com", "password": "nope", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert resp.request.path == "/auth/signin"
    assert b"Invalid email or password." in resp.data


def test_suspended_user_cannot_sign_in(app, client, make_user):
    make_user(email="bad@example.com", password="correct-horse", is_suspended=True)
    _csrf(client)
    resp = client.post(
        "/auth/signin",
        data={"email": "bad@example.com", "password": "correct-horse", "csrf_token": CSRF},
        follow_redirects=True,
    )
    assert b"suspended" in resp.data
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_signout_clears_session(client, make_user):
    login(client, make_user())
    resp = client.post("/auth/signout", data={"csrf_token": CSRF})
    assert resp.status_code == 302
    with client.session_transaction() as sess:
        assert "user_id" not in sess


@pytest.fixture
def discord(app):
    app.config.update(
        DISCORD_CLIENT_ID="cid",
        DISCORD_CLIENT_SECRET="csecret",
        DISCORD_REDIRECT_URI="http://localhost/auth/discord/callback",
    )
    return app


def test_discord_login_redirects_with_state(client, discord):
    resp = client.get("/auth/discord")
    assert resp.status_code == 302
    location = urlparse(resp.headers["Location"])
    assert location.netloc == "discord.com"
    params = parse_qs(location.query)
    assert params["client_id"] == ["cid"]
    with client.session_transaction() as sess:
        assert params["state"] == [sess["oauth_state"]]


def test_discord_login_when_not_configured(client):
    resp = client.get("/auth/discord")
    assert resp.headers["Location"].endswith("/auth/signin")


def _start_flow(client):
    with client.session_transaction() as sess:
        sess["oauth_state"] = "expected-state"


def test_discord_callback_creates_user(app, client, discord, monkeypatch):
    monkeypatch.setattr(oauth, "exchange_code", lambda code: "token-" + code)
    monkeypatch.setattr(
        oauth,
        "fetch_profile",
        lambda token: {"id": "42", "email": "gamer@example.com", "name": "Gamer", "avatar": None},
    )
    _start_flow(client)
    resp = client.get("/auth/discord/callback?code=abc&state=expected-state")
    assert resp.status_code == 302
    user = User.query.filter_by(discord_id="42").one()
    assert user.email == "gamer@example.com"
    assert user.password_hash is None
    with client.session_transaction() as sess:
        assert sess["user_id"] == user.id


def test_discord_callback_links_existing_email(app, client, discord, monkeypatch, make_user):
    existing = make_user(email="gamer@example.com")
    monkeypatch.setattr(oauth, "exchange_code", lambda code: "token")
    monkeypatch.setattr(
        oauth,
        "fetch_profile",
        lambda token: {"id": "42", "email": "gamer@example.com", "name": "Gamer", "avatar": None},
    )
    _start_flow(client)
    client.get("/auth/discord/callback?code=abc&state=expected-state")
    db.session.expire_all()
    assert existing.discord_id == "42"
    assert User.query.count() == 1


def test_discord_callback_rejects_bad_state(app, client, discord):
    _start_flow(client)
    resp = client.get("/auth/discord/callback?code=abc&state=forged", follow_redirects=True)
    assert b"expired" in resp.data
    assert User.query.count() == 0


def test_discord_callback_handles_provider_errors(app, client, discord, monkeypatch):
    def fail(code):
        raise OAuthError("token_exchange_failed")

    monkeypatch.setattr(oauth, "exchange_code", fail)
    _start_flow(client)
    resp = client.get("/auth/discord/callback?code=abc&state=expected-state", follow_redirects=True)
    assert b"Discord sign-in failed" in resp.data
