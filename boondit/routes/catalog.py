from __future__ import annotations

from flask import (
    Blueprint,
    abort,
    current_app,
    redirect,
    render_template,
    request,
)

from ..services import catalog
from ..shared.constants import SORT_OPTIONS
from ..shared.rbac import can_manage_creation, optional_user
from ..shared.tracking import view_session_id

bp = Blueprint("catalog", __name__)


@bp.get("/")
def index():
    category = (request.args.get("category") or "").strip() or None
    search = (request.args.get("search") or "").strip() or None
    sort = request.args.get("sort") or "newest"
    creations = catalog.list_published(category=category, search=search, sort=sort)
    unfiltered = not category and not search
    return render_template(
        "catalog/index.html",
        creations=creations,
        categories=catalog.all_categories(),
        top_creations=catalog.top_creations() if unfiltered else [],
        featured=catalog.featured_creations() if unfiltered else [],
        by_category=catalog.creations_by_category(creations) if unfiltered else [],
        active_category=category,
        search=search or "",
        sort=sort if sort in SORT_OPTIONS else "newest",
        sort_options=SORT_OPTIONS,
        error=request.args.get("error"),
    )


def _render_detail(creation_id: int):
    creation = catalog.get_creation(creation_id)
    if creation is None:
        abort(404)
    viewer = optional_user()
    if not creation.is_published and not can_manage_creation(viewer, creation):
        abort(404)
    if creation.is_published:
        session_id = view_session_id(request, viewer)
        counted = catalog.increment_creation_views(creation.id, session_id)
        current_app.logger.info(
            f"[VIEW] creation={creation.id} session={session_id} counted={counted}"
        )
    user_review = catalog.get_user_review(creation.id, viewer.id) if viewer else None
    return render_template(
        "catalog/detail.html",
        creation=creation,
        reviews=catalog.get_creation_reviews(creation.id),
        rating=catalog.average_rating(creation.id),
        screenshots=catalog.get_creation_screenshots(creation.id),
        user_review=user_review,
        can_manage=can_manage_creation(viewer, creation),
        page_url=request.url,
    )


@bp.get("/<int:creation_id>-<path:slug>")
def detail(creation_id: int, slug: str):
    return _render_detail(creation_id)


@bp.get("/<int:creation_id>")
def detail_by_id(creation_id: int):
    return _render_detail(creation_id)


@bp.get("/creation/<int:creation_id>")
def creation_redirect(creation_id: int):
    creation = catalog.get_creation(creation_id)
    if creation is None:
        abort(404)
    return redirect(creation.path)


@bp.get("/u/<user_id>")
def profile(user_id: str):
    data = catalog.user_profile(user_id)
    if data is None:
        abort(404)
    return render_template("catalog/profile.html", **data)
