from __future__ import annotations

from ..app import db
from ..models import User
from ..shared.passwords import MIN_PASSWORD_LENGTH


class RegistrationError(ValueError):
    pass


def find_by_email(email: str) -> User | None:
    email_lc = (email or "").strip().lower()
    if not email_lc:
        return None
    return User.query.filter(db.func.lower(User.email) == email_lc).first()


def register_user(email: str, password: str, name: str) -> User:
    email = (email or "").strip().lower()
    name = (name or "").strip()
    if not email or not name:
        raise RegistrationError("Name and email are required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise RegistrationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )
    if find_by_email(email):
        raise RegistrationError("User already exists")
    user = User(email=email, name=name)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    user = find_by_email(email)
    if user is None or not user.check_password(password):
        return None
    return user


def upsert_oauth_user(profile: dict) -> tuple[User, bool]:
    """Find the user for a Discord profile (by id, then email) or create one."""
    user = User.query.filter_by(discord_id=profile["id"]).first()
    if user is None:
        user = find_by_email(profile["email"])
        if user is not None and not user.discord_id:
            user.discord_id = profile["id"]
    created = False
    if user is None:
        user = User(
            email=profile["email"],
            name=profile["name"],
            avatar=profile.get("avatar"),
            discord_id=profile["id"],
        )
        db.session.add(user)
        created = True
    elif not user.avatar and profile.get("avatar"):
        user.avatar = profile["avatar"]
    db.session.commit()
    return user, created
