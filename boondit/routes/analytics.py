from flask import Blueprint, abort, redirect, render_template

from ..app import db
from ..models import Creation
from ..services import analytics
from ..shared.rbac import login_required

bp = Blueprint("analytics", __name__, url_prefix="/analytics")


@bp.get("/<int:creation_id>")
@login_required
def detail(creation_id: int, current_user):
    creation = db.session.get(Creation, creation_id)
    if not creation:
        abort(404)
    if not (current_user.is_admin or creation.user_id == current_user.id):
        return redirect(creation.path)
    return render_template(
        "analytics/detail.html",
        creation=creation,
        summary=analytics.get_creation_analytics(creation.id),
        daily=analytics.get_creation_daily_stats(creation.id),
        referrers=analytics.get_top_referrers(creation.id),
        devices=analytics.get_device_breakdown(creation.id),
    )
