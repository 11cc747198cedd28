from __future__ import annotations

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session as flask_session,
    url_for,
)
from email_validator import EmailNotValidError, validate_email

from ..services import accounts, oauth
from ..services.accounts import RegistrationError
from ..services.oauth import OAuthError

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _safe_next(target: str | None) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("dashboard.index")


def _login(user) -> None:
    for key in ["user_id", "user_email", "oauth_state"]:
        flask_session.pop(key, None)
    flask_session["user_id"] = user.id
    flask_session["user_email"] = user.email


@bp.route("/signin", methods=["GET", "POST"])
def signin():
    next_url = request.values.get("next")
    if request.method == "POST":
        email_input = request.form.get("email", "")
        password = request.form.get("password", "")
        try:
            email = validate_email(email_input, check_deliverability=False).normalized
        except EmailNotValidError:
            email = (email_input or "").strip().lower()
        user = accounts.authenticate(email, password)
        if user is None:
            current_app.logger.info(f"[AUTH-FAIL] signin email={email} reason=credentials")
            flash("Invalid email or password.", "error")
            return redirect(url_for("auth.signin", next=next_url))
        if user.is_suspended:
            current_app.logger.info(f"[AUTH-FAIL] signin user={user.id} reason=suspended")
            flash("Your account has been suspended.", "error")
            return redirect(url_for("auth.signin"))
        _login(user)
        current_app.logger.info(f"[AUTH] signin user={user.id}")
        return redirect(_safe_next(next_url))
    if flask_session.get("user_id"):
        return redirect(url_for("dashboard.index"))
    return render_template(
        "auth/signin.html",
        next_url=next_url,
        discord_enabled=oauth.is_configured(),
    )


@bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        email_input = request.form.get("email", "")
        try:
            email = validate_email(email_input, check_deliverability=False).normalized
        except EmailNotValidError:
            flash("Please enter a valid email address.", "error")
            return redirect(url_for("auth.register"))
        try:
            user = accounts.register_user(
                email, request.form.get("password", ""), request.form.get("name", "")
            )
        except RegistrationError as exc:
            flash(str(exc), "error")
            return redirect(url_for("auth.register"))
        _login(user)
        current_app.logger.info(f"[AUTH] registered user={user.id}")
        flash("Welcome! Your account is ready.", "success")
        return redirect(url_for("dashboard.index"))
    return render_template("auth/register.html", discord_enabled=oauth.is_configured())


@bp.get("/discord")
def discord_login():
    if not oauth.is_configured():
        flash("Discord sign-in is not configured.", "error")
        return redirect(url_for("auth.signin"))
    state = oauth.new_state()
    flask_session["oauth_state"] = state
    flask_session["oauth_next"] = request.args.get("next")
    return redirect(oauth.authorization_url(state))


@bp.get("/discord/callback")
def discord_callback():
    expected = flask_session.pop("oauth_state", None)
    next_url = flask_session.pop("oauth_next", None)
    if request.args.get("error"):
        current_app.logger.info(
            f"[AUTH-FAIL] discord reason={request.args.get('error')}"
        )
        flash("Discord sign-in was cancelled.", "error")
        return redirect(url_for("auth.signin"))
    state = request.args.get("state")
    code = request.args.get("code")
    if not expected or state != expected or not code:
        current_app.logger.info("[AUTH-FAIL] discord reason=state")
        flash("Sign-in request expired. Please try again.", "error")
        return redirect(url_for("auth.signin"))
    try:
        token = oauth.exchange_code(code)
        profile = oauth.fetch_profile(token)
    except OAuthError as exc:
        current_app.logger.info(f"[AUTH-FAIL] discord reason={exc}")
        flash("Discord sign-in failed. Please try again.", "error")
        return redirect(url_for("auth.signin"))
    user, created = accounts.upsert_oauth_user(profile)
    if user.is_suspended:
        current_app.logger.info(f"[AUTH-FAIL] discord user={user.id} reason=suspended")
        flash("Your account has been suspended.", "error")
        return redirect(url_for("auth.signin"))
    _login(user)
    current_app.logger.info(f"[AUTH] discord user={user.id} created={created}")
    return redirect(_safe_next(next_url))


@bp.route("/signout", methods=["GET", "POST"])
def signout():
    flask_session.clear()
    flash("Signed out.", "success")
    return redirect(url_for("catalog.index"))
