from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.orm import joinedload

from ..app import db
from ..models import (
    Category,
    Creation,
    CreationReview,
    CreationScreenshot,
    CreationView,
    User,
)
from ..shared.constants import MAX_RATING, MIN_RATING, SORT_OPTIONS
from ..shared.time import seconds_ago, utcnow_naive

_CREATION_PATH_RE = re.compile(r"^(\d+)(?:-.*)?$")


class ReviewValidationError(ValueError):
    """Raised when a rating is missing or out of range."""


class ScreenshotNotFound(LookupError):
    pass


def _published():
    return Creation.query.options(
        joinedload(Creation.category), joinedload(Creation.user)
    ).filter(Creation.status == "published")


def _rating_subquery():
    return (
        db.session.query(
            CreationReview.creation_id.label("creation_id"),
            func.avg(CreationReview.rating).label("avg_rating"),
        )
        .group_by(CreationReview.creation_id)
        .subquery()
    )


def list_published(
    category: str | None = None,
    search: str | None = None,
    sort: str | None = "newest",
) -> list[Creation]:
    """Published creations filtered by category id/slug and a free-text search."""
    query = _published()
    if category:
        query = query.outerjoin(Category, Creation.category_id == Category.id).filter(
            or_(Category.id == category, Category.slug == category)
        )
    if search:
        like = f"%{search.strip().lower()}%"
        if not category:
            query = query.outerjoin(Category, Creation.category_id == Category.id)
        query = query.filter(
            or_(
                func.lower(Creation.title).like(like),
                func.lower(Creation.description).like(like),
                func.lower(Creation.overview).like(like),
                func.lower(Creation.author).like(like),
                func.lower(Creation.tags).like(like),
                func.lower(Category.name).like(like),
            )
        )

    sort = sort if sort in SORT_OPTIONS else "newest"
    if sort == "oldest":
        query = query.order_by(Creation.created_at.asc(), Creation.id.asc())
    elif sort == "az":
        query = query.order_by(func.lower(Creation.title).asc())
    elif sort == "za":
        query = query.order_by(func.lower(Creation.title).desc())
    elif sort == "popular":
        query = query.order_by(Creation.views.desc(), Creation.id.desc())
    elif sort == "rating":
        ratings = _rating_subquery()
        query = query.outerjoin(ratings, ratings.c.creation_id == Creation.id).order_by(
            func.coalesce(ratings.c.avg_rating, 0).desc(), Creation.id.desc()
        )
    else:
        query = query.order_by(Creation.created_at.desc(), Creation.id.desc())
    return query.all()


def top_creations(limit: int = 12) -> list[Creation]:
    return (
        _published().order_by(Creation.views.desc(), Creation.id.desc()).limit(limit).all()
    )


def featured_creations(limit: int = 6) -> list[Creation]:
    return (
        _published()
        .filter(Creation.is_featured.is_(True))
        .order_by(Creation.created_at.desc())
        .limit(limit)
        .all()
    )


def all_categories() -> list[Category]:
    return Category.query.order_by(Category.name).all()


def creations_by_category(creations: list[Creation] | None = None) -> list[tuple]:
    """Pair each category with its published creations, skipping empty ones."""
    if creations is None:
        creations = list_published()
    grouped: dict[str, list[Creation]] = {}
    for creation in creations:
        if creation.category_id:
            grouped.setdefault(creation.category_id, []).append(creation)
    return [(cat, grouped[cat.id]) for cat in all_categories() if cat.id in grouped]


def parse_creation_path(path: str) -> int | None:
    """``"12-my-app"`` -> 12."""
    match = _CREATION_PATH_RE.match(path or "")
    return int(match.group(1)) if match else None


def get_creation(creation_id: int) -> Creation | None:
    return db.session.get(Creation, creation_id)


def increment_creation_views(
    creation_id: int, session_id: str, window: int | None = None
) -> bool:
    """Count a detail-page view unless this session viewed it within ``window`` seconds."""
    if window is None:
        window = current_app.config.get("VIEW_RATE_LIMIT_SECONDS", 3600)
    recent = (
        db.session.query(CreationView.id)
        .filter(
            CreationView.creation_id == creation_id,
            CreationView.session_id == session_id,
            CreationView.viewed_at >= seconds_ago(window),
        )
        .first()
    )
    if recent is not None:
        return False
    db.session.add(
        CreationView(
            creation_id=creation_id, session_id=session_id, viewed_at=utcnow_naive()
        )
    )
    Creation.query.filter_by(id=creation_id).update(
        {Creation.views: Creation.views + 1}, synchronize_session=False
    )
    db.session.commit()
    return True


def user_creations(user_id: str) -> list[Creation]:
    return (
        Creation.query.options(joinedload(Creation.category))
        .filter(Creation.user_id == user_id)
        .order_by(Creation.created_at.desc(), Creation.id.desc())
        .all()
    )


def user_profile(user_id: str) -> dict | None:
    user = db.session.get(User, user_id)
    if user is None:
        return None
    published = (
        _published()
        .filter(Creation.user_id == user_id)
        .order_by(Creation.created_at.desc())
        .all()
    )
    return {"user": user, "creations": published, "creation_count": len(published)}


# Reviews


def get_creation_reviews(creation_id: int) -> list[CreationReview]:
    return (
        CreationReview.query.options(joinedload(CreationReview.user))
        .filter_by(creation_id=creation_id)
        .order_by(CreationReview.created_at.desc(), CreationReview.id.desc())
        .all()
    )


def get_user_review(creation_id: int, user_id: str) -> CreationReview | None:
    return CreationReview.query.filter_by(
        creation_id=creation_id, user_id=user_id
    ).one_or_none()


def validate_rating(rating) -> int:
    # bool is an int subclass; whole floats such as 4.0 count as integers
    if isinstance(rating, float) and rating.is_integer():
        rating = int(rating)
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ReviewValidationError("Rating must be an integer between 1 and 5")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ReviewValidationError("Rating must be an integer between 1 and 5")
    return rating


def upsert_review(
    creation: Creation, user: User, rating, comment: str | None
) -> CreationReview:
    """Create the user's review, or update it if one already exists."""
    rating = validate_rating(rating)
    if comment is not None and not isinstance(comment, str):
        raise ReviewValidationError("Comment must be a string")
    comment = (comment or "").strip() or None
    review = get_user_review(creation.id, user.id)
    if review:
        review.rating = rating
        review.comment = comment
        review.updated_at = utcnow_naive()
    else:
        review = CreationReview(
            creation_id=creation.id, user_id=user.id, rating=rating, comment=comment
        )
        db.session.add(review)
    db.session.commit()
    return review


def delete_review(review: CreationReview) -> None:
    db.session.delete(review)
    db.session.commit()


def average_rating(creation_id: int) -> dict | None:
    avg, count = (
        db.session.query(func.avg(CreationReview.rating), func.count(CreationReview.id))
        .filter(CreationReview.creation_id == creation_id)
        .one()
    )
    if not count:
        return None
    return {"average": round(float(avg), 1), "count": count}


# Screenshots


def get_creation_screenshots(creation_id: int) -> list[CreationScreenshot]:
    return (
        CreationScreenshot.query.filter_by(creation_id=creation_id)
        .order_by(CreationScreenshot.sort_order, CreationScreenshot.id)
        .all()
    )


def _sync_main_url(creation: Creation) -> None:
    main = next((s for s in get_creation_screenshots(creation.id) if s.is_main), None)
    creation.screenshot_url = main.url if main else None


def add_screenshot(creation: Creation, url: str, is_main: bool = False) -> CreationScreenshot:
    existing = get_creation_screenshots(creation.id)
    if not existing:
        is_main = True
    if is_main:
        for shot in existing:
            shot.is_main = False
    next_order = max((s.sort_order for s in existing), default=-1) + 1
    screenshot = CreationScreenshot(
        creation_id=creation.id, url=url, is_main=bool(is_main), sort_order=next_order
    )
    db.session.add(screenshot)
    db.session.flush()
    _sync_main_url(creation)
    db.session.commit()
    return screenshot


def set_main_screenshot(screenshot_id: int, creation: Creation) -> CreationScreenshot:
    screenshots = get_creation_screenshots(creation.id)
    target = next((s for s in screenshots if s.id == screenshot_id), None)
    if target is None:
        raise ScreenshotNotFound("Screenshot not found")
    for shot in screenshots:
        shot.is_main = shot.id == screenshot_id
    db.session.flush()
    _sync_main_url(creation)
    db.session.commit()
    return target


def delete_screenshot(screenshot_id: int, creation: Creation) -> None:
    """Remove a screenshot; the next one in order becomes main if needed."""
    screenshot = CreationScreenshot.query.filter_by(
        id=screenshot_id, creation_id=creation.id
    ).one_or_none()
    if screenshot is None:
        raise ScreenshotNotFound("Screenshot not found")
    was_main = screenshot.is_main
    db.session.delete(screenshot)
    db.session.flush()
    if was_main:
        remaining = get_creation_screenshots(creation.id)
        if remaining:
            remaining[0].is_main = True
            db.session.flush()
    _sync_main_url(creation)
    db.session.commit()
