from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from sqlalchemy import func, or_

from ..app import db
from ..models import Category, Creation, User
from ..services import creations
from ..services.creations import CategoryValidationError
from ..shared.rbac import admin_required
from .api_admin import users_with_counts

bp = Blueprint("admin", __name__, url_prefix="/admin")


def _creation_or_404(creation_id: int) -> Creation:
    creation = db.session.get(Creation, creation_id)
    if not creation:
        abort(404)
    return creation


@bp.get("/users")
@admin_required
def users(current_user):
    return render_template("admin/users.html", users=users_with_counts())


@bp.post("/users/<user_id>/suspend")
@admin_required
def toggle_suspend(user_id: str, current_user):
    user = db.session.get(User, user_id)
    if not user:
        abort(404)
    if user.id == current_user.id:
        flash("You cannot suspend yourself", "error")
        return redirect(url_for("admin.users"))
    creations.set_suspension(user, current_user, not user.is_suspended)
    current_app.logger.info(
        f"[ADMIN] suspend user={user.id} suspend={user.is_suspended} by={current_user.id}"
    )
    flash("User suspended" if user.is_suspended else "User unsuspended", "info")
    return redirect(url_for("admin.users"))


@bp.get("/manage")
@admin_required
def manage(current_user):
    q = (request.args.get("q") or "").strip()
    query = Creation.query
    if q:
        like = f"%{q.lower()}%"
        query = query.filter(
            or_(
                func.lower(Creation.title).like(like),
                func.lower(Creation.url).like(like),
                func.lower(Creation.author).like(like),
            )
        )
    items = query.order_by(Creation.created_at.desc(), Creation.id.desc()).all()
    return render_template("admin/manage.html", creations=items, q=q)


@bp.post("/manage/<int:creation_id>/delete")
@admin_required
def delete_creation(creation_id: int, current_user):
    creation = _creation_or_404(creation_id)
    creations.delete_creation(creation, current_user)
    current_app.logger.info(f"[ADMIN] delete creation={creation_id} by={current_user.id}")
    flash("Creation deleted", "info")
    return redirect(url_for("admin.manage"))


@bp.post("/manage/<int:creation_id>/flag")
@admin_required
def flag_creation(creation_id: int, current_user):
    creation = _creation_or_404(creation_id)
    flagged = not creation.is_flagged
    creations.set_flag(creation, current_user, flagged, request.form.get("reason"))
    current_app.logger.info(
        f"[ADMIN] flag creation={creation_id} flag={flagged} by={current_user.id}"
    )
    flash("Creation flagged" if flagged else "Flag removed", "info")
    return redirect(url_for("admin.manage"))


@bp.post("/manage/<int:creation_id>/feature")
@admin_required
def feature_creation(creation_id: int, current_user):
    creation = _creation_or_404(creation_id)
    creations.set_featured(creation, current_user, not creation.is_featured)
    flash("Creation featured" if creation.is_featured else "Creation unfeatured", "info")
    return redirect(url_for("admin.manage"))


@bp.get("/categories")
@admin_required
def categories(current_user):
    items = Category.query.order_by(Category.name).all()
    counts = dict(
        db.session.query(Creation.category_id, func.count(Creation.id))
        .group_by(Creation.category_id)
        .all()
    )
    return render_template("admin/categories.html", categories=items, counts=counts)


@bp.post("/categories")
@admin_required
def create_category(current_user):
    try:
        category = creations.create_category(request.form)
    except CategoryValidationError as exc:
        flash(str(exc), "error")
        return redirect(url_for("admin.categories"))
    current_app.logger.info(f"[ADMIN] category created slug={category.slug}")
    flash("Category created", "success")
    return redirect(url_for("admin.categories"))


@bp.post("/categories/<category_id>/edit")
@admin_required
def update_category(category_id: str, current_user):
    category = db.session.get(Category, category_id)
    if not category:
        abort(404)
    try:
        creations.update_category(category, request.form)
    except CategoryValidationError as exc:
        flash(str(exc), "error")
        return redirect(url_for("admin.categories"))
    flash("Category updated", "success")
    return redirect(url_for("admin.categories"))


@bp.post("/categories/<category_id>/delete")
@admin_required
def delete_category(category_id: str, current_user):
    category = db.session.get(Category, category_id)
    if not category:
        abort(404)
    creations.delete_category(category)
    current_app.logger.info(f"[ADMIN] category deleted id={category_id}")
    flash("Category deleted", "info")
    return redirect(url_for("admin.categories"))
