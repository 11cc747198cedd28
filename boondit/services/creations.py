"""Write operations for creations, categories, profiles and moderation."""

from __future__ import annotations

import re
import secrets
from typing import Mapping

from ..app import db
from ..models import (
    AuditLog,
    Category,
    Creation,
    CreationClick,
    CreationDailyStat,
    CreationInstall,
    CreationView,
    User,
)
from ..shared.constants import (
    CREATION_STATUSES,
    PROXY_CODE_ATTEMPTS,
    PROXY_CODE_BYTES,
)

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

EDITABLE_FIELDS = (
    "description",
    "overview",
    "icon_url",
    "og_image",
    "theme_color",
    "author",
    "tags",
)


class CreationValidationError(ValueError):
    pass


class CreationPermissionError(PermissionError):
    pass


class CategoryValidationError(ValueError):
    pass


def generate_slug(title: str) -> str:
    return _SLUG_STRIP_RE.sub("-", (title or "").lower()).strip("-")


def normalize_url(url: str | None) -> str:
    url = (url or "").strip()
    if url and not _SCHEME_RE.match(url):
        url = f"https://{url}"
    return url


def generate_proxy_code() -> str:
    for _ in range(PROXY_CODE_ATTEMPTS):
        code = secrets.token_urlsafe(PROXY_CODE_BYTES)
        if not Creation.query.filter_by(proxy_code=code).first():
            return code
    raise RuntimeError("Could not allocate a unique proxy code")


def _clean(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _resolve_category(raw) -> str | None:
    raw = _clean(raw)
    if not raw or raw == "none":
        return None
    category = db.session.get(Category, raw) or Category.query.filter_by(slug=raw).first()
    if category is None:
        raise CreationValidationError("Unknown category")
    return category.id


def _apply_fields(creation: Creation, data: Mapping) -> None:
    title = _clean(data.get("title"))
    url = normalize_url(data.get("url"))
    if not title:
        raise CreationValidationError("Title is required")
    if not url:
        raise CreationValidationError("URL is required")
    creation.title = title
    creation.url = url
    creation.slug = generate_slug(_clean(data.get("slug")) or title) or "creation"
    for field in EDITABLE_FIELDS:
        if field in data:
            setattr(creation, field, _clean(data.get(field)))
    if "category_id" in data:
        creation.category_id = _resolve_category(data.get("category_id"))
    status = _clean(data.get("status"))
    if status:
        if status not in CREATION_STATUSES:
            raise CreationValidationError("Invalid status")
        creation.status = status


def ensure_can_manage(creation: Creation, actor: User) -> None:
    if actor is None or not (actor.is_admin or creation.user_id == actor.id):
        raise CreationPermissionError("Unauthorized")


def create_creation(owner: User, data: Mapping) -> Creation:
    creation = Creation(user_id=owner.id, status="draft")
    _apply_fields(creation, data)
    if not creation.author:
        creation.author = owner.name
    creation.proxy_code = generate_proxy_code()
    db.session.add(creation)
    db.session.commit()
    return creation


def update_creation(creation: Creation, actor: User, data: Mapping) -> Creation:
    ensure_can_manage(creation, actor)
    _apply_fields(creation, data)
    if not creation.proxy_code:
        creation.proxy_code = generate_proxy_code()
    db.session.commit()
    return creation


def publish_creation(creation: Creation, actor: User) -> Creation:
    ensure_can_manage(creation, actor)
    creation.status = "published"
    db.session.commit()
    return creation


def delete_creation(creation: Creation, actor: User) -> None:
    """Delete a creation along with its tracking events and rollups."""
    ensure_can_manage(creation, actor)
    for model in (CreationClick, CreationInstall, CreationView, CreationDailyStat):
        model.query.filter_by(creation_id=creation.id).delete(synchronize_session=False)
    if actor.id != creation.user_id:
        db.session.add(
            AuditLog(
                user_id=actor.id,
                action="creation_delete",
                details=f"creation_id={creation.id} title={creation.title}",
            )
        )
    db.session.delete(creation)
    db.session.commit()


# Categories


def _category_fields(data: Mapping) -> dict:
    name = _clean(data.get("name"))
    if not name:
        raise CategoryValidationError("Name is required")
    slug = generate_slug(_clean(data.get("slug")) or name)
    if not slug:
        raise CategoryValidationError("Slug is required")
    return {
        "name": name,
        "slug": slug,
        "description": _clean(data.get("description")),
        "color": _clean(data.get("color")),
        "icon": _clean(data.get("icon")),
    }


def create_category(data: Mapping) -> Category:
    fields = _category_fields(data)
    if Category.query.filter_by(slug=fields["slug"]).first() or db.session.get(
        Category, fields["slug"]
    ):
        raise CategoryValidationError("Category slug already exists")
    category = Category(id=fields["slug"], **fields)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(category: Category, data: Mapping) -> Category:
    fields = _category_fields(data)
    clash = Category.query.filter(
        Category.slug == fields["slug"], Category.id != category.id
    ).first()
    if clash:
        raise CategoryValidationError("Category slug already exists")
    for key, value in fields.items():
        setattr(category, key, value)
    db.session.commit()
    return category


def delete_category(category: Category) -> None:
    Creation.query.filter_by(category_id=category.id).update(
        {Creation.category_id: None}, synchronize_session=False
    )
    db.session.delete(category)
    db.session.commit()


# Profiles and moderation


def update_profile(user: User, name: str | None, bio: str | None, avatar: str | None) -> User:
    name = _clean(name)
    if not name:
        raise ValueError("Name is required")
    user.name = name
    user.bio = _clean(bio)
    user.avatar = _clean(avatar)
    db.session.commit()
    return user


def set_flag(creation: Creation, actor: User, flagged: bool, reason: str | None = None) -> Creation:
    creation.is_flagged = bool(flagged)
    creation.flag_reason = _clean(reason) if flagged else None
    db.session.add(
        AuditLog(
            user_id=actor.id,
            action="creation_flag" if flagged else "creation_unflag",
            details=f"creation_id={creation.id} reason={creation.flag_reason or ''}",
        )
    )
    db.session.commit()
    return creation


def set_suspension(user: User, actor: User, suspend: bool) -> User:
    user.is_suspended = bool(suspend)
    db.session.add(
        AuditLog(
            user_id=actor.id,
            action="user_suspend" if suspend else "user_unsuspend",
            details=f"user_id={user.id}",
        )
    )
    db.session.commit()
    return user


def set_featured(creation: Creation, actor: User, featured: bool) -> Creation:
    creation.is_featured = bool(featured)
    db.session.add(
        AuditLog(
            user_id=actor.id,
            action="creation_feature" if featured else "creation_unfeature",
            details=f"creation_id={creation.id}",
        )
    )
    db.session.commit()
    return creation


_EMOJI_RE = re.compile("[\u2600-\u27bf\ue000-\uf8ff\U0001f300-\U0001f9ff]")


def clear_emoji_icons() -> list[str]:
    """Blank category icons that are emoji; returns the names touched."""
    cleared = []
    for category in Category.query.order_by(Category.name).all():
        if category.icon and _EMOJI_RE.search(category.icon):
            category.icon = None
            cleared.append(category.name)
    db.session.commit()
    return cleared
