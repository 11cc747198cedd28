import io
import pathlib
import sys

import pytest
from PIL import Image

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from boondit.app import create_app, db
from boondit.models import Category, Creation, User

CSRF = "token"


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "slow" in item.keywords:
            continue
        item.add_marker("full")
        item.add_marker("smoke")


@pytest.fixture
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("FLASK_SKIP_SEED", "1")
    monkeypatch.setenv("SITE_ROOT", str(tmp_path))
    for key in ("IMG_BB_API_KEY", "DISCORD_CLIENT_ID", "DISCORD_CLIENT_SECRET", "SEED_CATEGORIES"):
        monkeypatch.delenv(key, raising=False)
    application = create_app()
    application.config["TESTING"] = True
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(email=None, name="Maker", password=None, is_admin=False, is_suspended=False):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            name=name,
            is_admin=is_admin,
            is_suspended=is_suspended,
        )
        if password:
            user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_category(app):
    def _make(name="Games", slug="games"):
        category = Category(id=slug, name=name, slug=slug)
        db.session.add(category)
        db.session.commit()
        return category

    return _make


@pytest.fixture
def make_creation(app):
    counter = {"n": 0}

    def _make(user, title="Space Game", status="published", **fields):
        counter["n"] += 1
        creation = Creation(
            title=title,
            slug=fields.pop("slug", title.lower().replace(" ", "-")),
            url=fields.pop("url", "https://example.com/app"),
            user_id=user.id,
            status=status,
            proxy_code=fields.pop("proxy_code", f"code{counter['n']:04d}"),
            **fields,
        )
        db.session.add(creation)
        db.session.commit()
        return creation

    return _make


def login(client, user):
    with client.session_transaction() as sess:
        sess["user_id"] = user.id
        sess["_csrf_token"] = CSRF


def png_bytes(size=(4, 3), color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()
