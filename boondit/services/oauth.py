"""Discord OAuth2 authorization-code flow."""

from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

import requests
from flask import current_app

from ..shared.constants import (
    DISCORD_AUTH_URL,
    DISCORD_AVATAR_URL,
    DISCORD_SCOPES,
    DISCORD_TOKEN_URL,
    DISCORD_USER_URL,
    OAUTH_TIMEOUT_SECONDS,
)

logger = logging.getLogger("boondit.oauth")


class OAuthError(RuntimeError):
    """Raised when the provider rejects the exchange or returns unusable data."""


def new_state() -> str:
    return secrets.token_urlsafe(24)


def is_configured() -> bool:
    cfg = current_app.config
    return bool(
        cfg.get("DISCORD_CLIENT_ID")
        and cfg.get("DISCORD_CLIENT_SECRET")
        and cfg.get("DISCORD_REDIRECT_URI")
    )


def authorization_url(state: str) -> str:
    params = {
        "response_type": "code",
        "client_id": current_app.config["DISCORD_CLIENT_ID"],
        "redirect_uri": current_app.config["DISCORD_REDIRECT_URI"],
        "scope": " ".join(DISCORD_SCOPES),
        "state": state,
        "prompt": "consent",
    }
    return f"{DISCORD_AUTH_URL}?{urlencode(params)}"


def exchange_code(code: str) -> str:
    """Swap an authorization code for an access token."""
    data = {
        "client_id": current_app.config["DISCORD_CLIENT_ID"],
        "client_secret": current_app.config["DISCORD_CLIENT_SECRET"],
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": current_app.config["DISCORD_REDIRECT_URI"],
    }
    try:
        resp = requests.post(
            DISCORD_TOKEN_URL,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=OAUTH_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise OAuthError(f"token request failed: {exc}") from exc
    if resp.status_code != 200:
        logger.warning("discord token exchange failed status=%s", resp.status_code)
        raise OAuthError("token_exchange_failed")
    access_token = resp.json().get("access_token")
    if not access_token:
        raise OAuthError("no_access_token")
    return access_token


def fetch_profile(access_token: str) -> dict:
    """Return ``{"id", "email", "name", "avatar"}`` for the authorized Discord user."""
    try:
        resp = requests.get(
            DISCORD_USER_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=OAUTH_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise OAuthError(f"profile request failed: {exc}") from exc
    if resp.status_code != 200:
        raise OAuthError("userinfo_fetch_failed")
    info = resp.json()
    email = info.get("email")
    if not email or not info.get("id"):
        raise OAuthError("no_email")
    avatar = None
    if info.get("avatar"):
        avatar = DISCORD_AVATAR_URL.format(user_id=info["id"], avatar=info["avatar"])
    return {
        "id": str(info["id"]),
        "email": email,
        "name": info.get("global_name") or info.get("username") or email,
        "avatar": avatar,
    }
