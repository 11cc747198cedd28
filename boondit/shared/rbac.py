from functools import wraps

from flask import abort, jsonify, redirect, request, session, url_for

from ..app import db
from ..models import User


def _current_user():
    user_id = session.get("user_id")
    if not user_id:
        return None
    return db.session.get(User, user_id)


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _current_user()
        if not user:
            return redirect(url_for("auth.signin", next=request.path))
        return fn(*args, **kwargs, current_user=user)

    return wrapper


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _current_user()
        if not user:
            return redirect(url_for("auth.signin", next=request.path))
        if not user.is_admin:
            abort(403)
        return fn(*args, **kwargs, current_user=user)

    return wrapper


def api_login_required(fn):
    """JSON flavour of login_required: 401 instead of a redirect."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _current_user()
        if not user:
            return jsonify({"error": "Unauthorized"}), 401
        return fn(*args, **kwargs, current_user=user)

    return wrapper


def api_admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = _current_user()
        if not user or not user.is_admin:
            return jsonify({"error": "Unauthorized"}), 401
        return fn(*args, **kwargs, current_user=user)

    return wrapper


def optional_user():
    return _current_user()


def can_manage_creation(user, creation) -> bool:
    return bool(user and (user.is_admin or creation.user_id == user.id))
