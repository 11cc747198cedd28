from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for

from ..app import db
from ..models import Creation
from ..services import catalog, creations
from ..services.creations import CreationPermissionError, CreationValidationError
from ..shared.rbac import login_required

bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


def _owned_creation(creation_id: int, user) -> Creation:
    creation = db.session.get(Creation, creation_id)
    if not creation:
        abort(404)
    if not (user.is_admin or creation.user_id == user.id):
        abort(403)
    return creation


@bp.get("/")
@login_required
def index(current_user):
    items = catalog.user_creations(current_user.id)
    published = sum(1 for c in items if c.is_published)
    return render_template(
        "dashboard/index.html",
        creations=items,
        stats={
            "total": len(items),
            "published": published,
            "drafts": len(items) - published,
        },
    )


@bp.get("/new")
@login_required
def new(current_user):
    return render_template(
        "dashboard/form.html", creation=None, categories=catalog.all_categories()
    )


@bp.post("/new")
@login_required
def create(current_user):
    try:
        creation = creations.create_creation(current_user, request.form)
    except CreationValidationError as exc:
        flash(str(exc), "error")
        return redirect(url_for("dashboard.new"))
    current_app.logger.info(
        f"[CREATION] created id={creation.id} user={current_user.id} status={creation.status}"
    )
    flash("Creation saved", "success")
    return redirect(url_for("dashboard.index"))


@bp.get("/edit/<int:creation_id>")
@login_required
def edit(creation_id: int, current_user):
    creation = _owned_creation(creation_id, current_user)
    return render_template(
        "dashboard/form.html",
        creation=creation,
        categories=catalog.all_categories(),
        screenshots=catalog.get_creation_screenshots(creation.id),
    )


@bp.post("/edit/<int:creation_id>")
@login_required
def update(creation_id: int, current_user):
    creation = _owned_creation(creation_id, current_user)
    try:
        creations.update_creation(creation, current_user, request.form)
    except CreationValidationError as exc:
        flash(str(exc), "error")
        return redirect(url_for("dashboard.edit", creation_id=creation_id))
    current_app.logger.info(f"[CREATION] updated id={creation.id} user={current_user.id}")
    flash("Creation updated", "success")
    return redirect(url_for("dashboard.index"))


@bp.post("/<int:creation_id>/publish")
@login_required
def publish(creation_id: int, current_user):
    creation = _owned_creation(creation_id, current_user)
    creations.publish_creation(creation, current_user)
    current_app.logger.info(f"[CREATION] published id={creation.id}")
    flash("Creation published", "success")
    return redirect(url_for("dashboard.index"))


@bp.post("/<int:creation_id>/delete")
@login_required
def delete(creation_id: int, current_user):
    creation = _owned_creation(creation_id, current_user)
    try:
        creations.delete_creation(creation, current_user)
    except CreationPermissionError:
        abort(403)
    current_app.logger.info(f"[CREATION] deleted id={creation_id} by={current_user.id}")
    flash("Creation deleted", "info")
    return redirect(url_for("dashboard.index"))


@bp.route("/profile", methods=["GET", "POST"])
@login_required
def profile(current_user):
    if request.method == "POST":
        try:
            creations.update_profile(
                current_user,
                request.form.get("name"),
                request.form.get("bio"),
                request.form.get("avatar"),
            )
        except ValueError as exc:
            flash(str(exc), "error")
            return redirect(url_for("dashboard.profile"))
        flash("Profile updated", "success")
        return redirect(url_for("dashboard.profile"))
    return render_template("dashboard/profile.html", user=current_user)
