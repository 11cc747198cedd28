"""JSON endpoints for creations, reviews, screenshots and install tracking."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..models import Creation
from ..services import analytics, catalog, creations, uploads
from ..services.catalog import ReviewValidationError, ScreenshotNotFound
from ..services.creations import CreationPermissionError, CreationValidationError
from ..services.uploads import UploadError
from ..shared.constants import MAX_SESSION_ID_LENGTH
from ..shared.images import ImageValidationError, validate_upload
from ..shared.rbac import api_login_required, can_manage_creation, optional_user
from ..shared.tracking import tracking_session_id

bp = Blueprint("api", __name__, url_prefix="/api")

# JSON body key -> creation field
CREATION_KEYS = {
    "title": "title",
    "url": "url",
    "slug": "slug",
    "description": "description",
    "overview": "overview",
    "iconUrl": "icon_url",
    "ogImage": "og_image",
    "themeColor": "theme_color",
    "author": "author",
    "tags": "tags",
    "categoryId": "category_id",
    "status": "status",
}


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _json_text(body: dict, key: str) -> str | None:
    """Stripped string value of ``key``; None when missing or not a string."""
    value = body.get(key)
    if not isinstance(value, str):
        return None
    return value.strip()


def _creation_fields(body: dict) -> dict:
    data = {}
    for key, field in CREATION_KEYS.items():
        if key in body:
            value = body[key]
            if field == "tags" and isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            data[field] = value
    return data


def _error(message: str, status: int):
    return jsonify({"error": message}), status


@bp.get("/creations")
def list_creations():
    viewer = optional_user()
    if viewer and viewer.is_admin:
        query = Creation.query
        status = request.args.get("status")
        if status:
            query = query.filter(Creation.status == status)
        items = query.order_by(Creation.created_at.desc(), Creation.id.desc()).all()
    else:
        items = catalog.list_published(
            category=request.args.get("category"),
            search=request.args.get("search"),
            sort=request.args.get("sort"),
        )
    return jsonify([c.to_dict() for c in items])


@bp.post("/creations")
@api_login_required
def create_creation(current_user):
    try:
        creation = creations.create_creation(
            current_user, _creation_fields(_json_body())
        )
    except CreationValidationError as exc:
        return _error(str(exc), 400)
    current_app.logger.info(
        f"[CREATION] created id={creation.id} user={current_user.id} via=api"
    )
    return jsonify(creation.to_dict()), 201


@bp.delete("/creations/<int:creation_id>")
@api_login_required
def delete_creation(creation_id: int, current_user):
    creation = catalog.get_creation(creation_id)
    if creation is None:
        return _error("Creation not found", 404)
    try:
        creations.delete_creation(creation, current_user)
    except CreationPermissionError:
        return _error("Unauthorized", 403)
    current_app.logger.info(
        f"[CREATION] deleted id={creation_id} by={current_user.id} via=api"
    )
    return jsonify({"success": True})


# Reviews


@bp.get("/creations/<int:creation_id>/reviews")
def list_reviews(creation_id: int):
    if catalog.get_creation(creation_id) is None:
        return _error("Creation not found", 404)
    return jsonify([r.to_dict() for r in catalog.get_creation_reviews(creation_id)])


@bp.post("/creations/<int:creation_id>/reviews")
@api_login_required
def post_review(creation_id: int, current_user):
    creation = catalog.get_creation(creation_id)
    if creation is None:
        return _error("Creation not found", 404)
    body = _json_body()
    try:
        review = catalog.upsert_review(
            creation, current_user, body.get("rating"), body.get("comment")
        )
    except ReviewValidationError as exc:
        return _error(str(exc), 400)
    current_app.logger.info(
        f"[REVIEW] creation={creation_id} user={current_user.id} rating={review.rating}"
    )
    return jsonify(review.to_dict()), 201


@bp.delete("/creations/<int:creation_id>/reviews")
@api_login_required
def delete_review(creation_id: int, current_user):
    review = catalog.get_user_review(creation_id, current_user.id)
    if review is None:
        return _error("Review not found", 404)
    catalog.delete_review(review)
    return jsonify({"success": True})


# Screenshots


def _managed_creation(creation_id: int, user):
    creation = catalog.get_creation(creation_id)
    if creation is None:
        return None, _error("Creation not found", 404)
    if not can_manage_creation(user, creation):
        return None, _error("Unauthorized", 403)
    return creation, None


def _screenshot_id(body: dict) -> int | None:
    try:
        return int(body.get("screenshotId"))
    except (TypeError, ValueError):
        return None


@bp.get("/creations/<int:creation_id>/screenshots")
def list_screenshots(creation_id: int):
    shots = catalog.get_creation_screenshots(creation_id)
    return jsonify({"screenshots": [s.to_dict() for s in shots]})


@bp.post("/creations/<int:creation_id>/screenshots")
@api_login_required
def add_screenshot(creation_id: int, current_user):
    body = _json_body()
    url = _json_text(body, "url")
    if not url:
        return _error("URL is required", 400)
    creation, error = _managed_creation(creation_id, current_user)
    if error:
        return error
    screenshot = catalog.add_screenshot(creation, url, bool(body.get("isMain")))
    return jsonify({"success": True, "screenshot": screenshot.to_dict()})


@bp.patch("/creations/<int:creation_id>/screenshots")
@api_login_required
def set_main_screenshot(creation_id: int, current_user):
    screenshot_id = _screenshot_id(_json_body())
    if screenshot_id is None:
        return _error("Screenshot ID is required", 400)
    creation, error = _managed_creation(creation_id, current_user)
    if error:
        return error
    try:
        catalog.set_main_screenshot(screenshot_id, creation)
    except ScreenshotNotFound as exc:
        return _error(str(exc), 404)
    return jsonify({"success": True})


@bp.delete("/creations/<int:creation_id>/screenshots")
@api_login_required
def delete_screenshot(creation_id: int, current_user):
    screenshot_id = _screenshot_id(_json_body())
    if screenshot_id is None:
        return _error("Screenshot ID is required", 400)
    creation, error = _managed_creation(creation_id, current_user)
    if error:
        return error
    try:
        catalog.delete_screenshot(screenshot_id, creation)
    except ScreenshotNotFound as exc:
        return _error(str(exc), 404)
    return jsonify({"success": True})


@bp.post("/screenshots/upload")
@api_login_required
def upload_screenshot(current_user):
    try:
        image = validate_upload(request.files.get("file"))
    except ImageValidationError as exc:
        return _error(str(exc), 400)
    try:
        stored = uploads.save_screenshot(image, current_user.id)
    except UploadError as exc:
        current_app.logger.warning(f"[UPLOAD] failed user={current_user.id} error={exc}")
        return _error(str(exc), 502)
    current_app.logger.info(
        f"[UPLOAD] user={current_user.id} size={len(image.data)} "
        f"dims={image.width}x{image.height} url={stored['url']}"
    )
    return jsonify(
        {
            "success": True,
            "url": stored["url"],
            "displayUrl": stored.get("display_url"),
            "deleteUrl": stored.get("delete_url"),
        }
    )


@bp.post("/analytics/install")
def record_install():
    body = _json_body()
    proxy_code = _json_text(body, "proxyCode")
    if not proxy_code:
        return _error("proxyCode is required", 400)
    session_id = body.get("sessionId")
    if session_id is None or session_id == "":
        session_id = tracking_session_id(request)
    elif not isinstance(session_id, str) or len(session_id) > MAX_SESSION_ID_LENGTH:
        return _error("Invalid sessionId", 400)
    if not analytics.record_install(
        proxy_code, session_id, request.headers.get("User-Agent")
    ):
        return _error("Invalid proxy code", 404)
    current_app.logger.info(f"[INSTALL] code={proxy_code} session={session_id}")
    return jsonify({"success": True})
