import logging
import os
import secrets

from flask import (
    Flask,
    abort,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    send_from_directory,
    session,
    url_for,
)
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from .models import User, Category  # noqa: E402
from .shared.constants import DEFAULT_CATEGORIES  # noqa: E402
from .shared.html import render_markdown  # noqa: E402
from .shared.time import fmt_date  # noqa: E402

CSRF_EXEMPT_PREFIXES = ("/api/", "/go/")


def create_app():
    app = Flask(__name__, template_folder="templates")
    app.secret_key = os.getenv("SECRET_KEY", "dev")
    app.config["PREFERRED_URL_SCHEME"] = "https"
    app.jinja_env.filters["fmt_date"] = fmt_date
    app.jinja_env.filters["markdown"] = render_markdown

    def generate_csrf_token():
        token = session.get("_csrf_token")
        if not token:
            token = secrets.token_hex(16)
            session["_csrf_token"] = token
        return token

    app.jinja_env.globals["csrf_token"] = generate_csrf_token

    DB_USER = os.getenv("DB_USER", "boondit")
    DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
    DB_HOST = os.getenv("DB_HOST", "db")
    DB_NAME = os.getenv("DB_NAME", "boondit")
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}/{DB_NAME}",
    )

    app.config["SQLALCHEMY_DATABASE_URI"] = DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = 25 * 1024 * 1024

    app.config["SITE_ROOT"] = os.getenv("SITE_ROOT", "/srv")
    app.config["IMG_BB_API_KEY"] = os.getenv("IMG_BB_API_KEY", "")
    app.config["DISCORD_CLIENT_ID"] = os.getenv("DISCORD_CLIENT_ID", "")
    app.config["DISCORD_CLIENT_SECRET"] = os.getenv("DISCORD_CLIENT_SECRET", "")
    app.config["DISCORD_REDIRECT_URI"] = os.getenv("DISCORD_REDIRECT_URI", "")
    app.config["CLICK_RATE_LIMIT_SECONDS"] = int(
        os.getenv("CLICK_RATE_LIMIT_SECONDS", "3600")
    )
    app.config["VIEW_RATE_LIMIT_SECONDS"] = int(
        os.getenv("VIEW_RATE_LIMIT_SECONDS", "3600")
    )

    db.init_app(app)

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename: str):
        upload_dir = os.path.join(app.config["SITE_ROOT"], "uploads")
        return send_from_directory(upload_dir, filename)

    @app.context_processor
    def inject_user():
        user = None
        user_id = session.get("user_id")
        if user_id:
            user = db.session.get(User, user_id)
        return {
            "current_user": user,
            "is_admin": bool(user and user.is_admin),
        }

    @app.before_request
    def enforce_suspension():
        user_id = session.get("user_id")
        if not user_id:
            return None
        user = db.session.get(User, user_id)
        if user is None or user.is_suspended:
            session.clear()
            app.logger.info(f"[AUTH] signed out suspended user={user_id}")
            if request.path.startswith("/api/"):
                return jsonify({"error": "Account suspended"}), 403
            flash("Your account has been suspended.", "error")
            return redirect(url_for("auth.signin"))
        return None

    @app.before_request
    def check_csrf():
        if request.method != "POST":
            return None
        if request.path.startswith(CSRF_EXEMPT_PREFIXES):
            return None
        expected = session.get("_csrf_token")
        supplied = request.form.get("csrf_token")
        if not expected or not supplied or not secrets.compare_digest(
            expected, supplied
        ):
            abort(400)
        return None

    @app.get("/health")
    def health():  # pragma: no cover - simple healthcheck
        return "OK", 200

    @app.get("/tos")
    def tos():
        return render_template("tos.html")

    @app.get("/privacy")
    def privacy():
        return render_template("privacy.html")

    from .routes.auth import bp as auth_bp
    from .routes.catalog import bp as catalog_bp
    from .routes.dashboard import bp as dashboard_bp
    from .routes.go import bp as go_bp
    from .routes.analytics import bp as analytics_bp
    from .routes.admin import bp as admin_bp
    from .routes.api import bp as api_bp
    from .routes.api_admin import bp as api_admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(go_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(api_admin_bp)
    app.register_blueprint(catalog_bp)

    with app.app_context():
        if not os.getenv("FLASK_SKIP_SEED"):
            promote_first_admin_safely()
        if os.getenv("SEED_CATEGORIES"):
            seed_categories_safely()

    return app


def promote_first_admin_safely() -> None:
    """Give admin rights to FIRST_ADMIN_EMAIL once that user exists."""

    try:
        email = (os.getenv("FIRST_ADMIN_EMAIL") or "").strip().lower()
        if not email:
            return
        from sqlalchemy import inspect

        if "users" not in inspect(db.engine).get_table_names():
            logging.info("admin promotion skipped (users table missing)")
            return
        user = User.query.filter(db.func.lower(User.email) == email).one_or_none()
        if user and not user.is_admin:
            user.is_admin = True
            db.session.commit()
            logging.info("Promoted %s to admin.", email)
    except Exception:
        db.session.rollback()
        logging.exception("promote_first_admin_safely failed")


def seed_categories_safely() -> int:
    """Seed default categories if the table exists; returns rows added."""

    try:
        from sqlalchemy import inspect

        if "categories" not in inspect(db.engine).get_table_names():
            return 0
        added = 0
        for item in DEFAULT_CATEGORIES:
            if db.session.get(Category, item["slug"]):
                continue
            if Category.query.filter_by(slug=item["slug"]).first():
                continue
            db.session.add(Category(id=item["slug"], **item))
            added += 1
        db.session.commit()
        logging.info("Seeded %d categories.", added)
        return added
    except Exception:  # pragma: no cover
        db.session.rollback()
        logging.exception("seed_categories_safely failed")
        return 0
