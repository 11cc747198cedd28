from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func

from ..app import db
from ..models import Creation, User
from ..services import creations
from ..shared.rbac import api_admin_required

bp = Blueprint("api_admin", __name__, url_prefix="/api/admin")


def users_with_counts() -> list[dict]:
    counts = dict(
        db.session.query(Creation.user_id, func.count(Creation.id))
        .group_by(Creation.user_id)
        .all()
    )
    users = User.query.order_by(User.created_at.desc(), User.email).all()
    return [
        {
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "avatar": u.avatar,
            "isAdmin": u.is_admin,
            "isSuspended": u.is_suspended,
            "createdAt": u.created_at.isoformat() if u.created_at else None,
            "creationCount": counts.get(u.id, 0),
        }
        for u in users
    ]


@bp.get("/users")
@api_admin_required
def list_users(current_user):
    return jsonify(users_with_counts())


@bp.post("/users/<user_id>/suspend")
@api_admin_required
def suspend_user(user_id: str, current_user):
    body = request.get_json(silent=True) or {}
    suspend = body.get("suspend") if isinstance(body, dict) else None
    if not isinstance(suspend, bool):
        return jsonify({"error": "Invalid suspend value"}), 400
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    if user.id == current_user.id and suspend:
        return jsonify({"error": "You cannot suspend yourself"}), 400
    creations.set_suspension(user, current_user, suspend)
    current_app.logger.info(
        f"[ADMIN] suspend user={user.id} suspend={suspend} by={current_user.id}"
    )
    return jsonify(
        {
            "success": True,
            "message": "User suspended" if suspend else "User unsuspended",
        }
    )


@bp.post("/creations/<int:creation_id>/flag")
@api_admin_required
def flag_creation(creation_id: int, current_user):
    body = request.get_json(silent=True) or {}
    flag = body.get("flag") if isinstance(body, dict) else None
    if not isinstance(flag, bool):
        return jsonify({"error": "Invalid flag value"}), 400
    creation = db.session.get(Creation, creation_id)
    if creation is None:
        return jsonify({"error": "Creation not found"}), 404
    creations.set_flag(creation, current_user, flag, body.get("reason"))
    current_app.logger.info(
        f"[ADMIN] flag creation={creation.id} flag={flag} by={current_user.id}"
    )
    return jsonify({"success": True, "creation": creation.to_dict()})
