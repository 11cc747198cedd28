import io
import os

import pytest
import requests
from werkzeug.datastructures import FileStorage

from boondit.app import db
from boondit.models import CreationScreenshot
from boondit.shared.images import validate_upload
from conftest import login, png_bytes


@pytest.fixture
def owner(make_user):
    return make_user(name="Owner")


@pytest.fixture
def creation(owner, make_creation):
    return make_creation(owner)


def _add(client, creation, url, is_main=False):
    return client.post(
        f"/api/creations/{creation.id}/screenshots", json={"url": url, "isMain": is_main}
    )


def test_first_screenshot_becomes_main(app, client, owner, creation):
    login(client, owner)
    first = _add(client, creation, "https://img.example.com/1.png").get_json()
    second = _add(client, creation, "https://img.example.com/2.png").get_json()
    assert first["screenshot"]["isMain"] is True
    assert second["screenshot"]["isMain"] is False
    assert second["screenshot"]["sortOrder"] == 1
    db.session.expire_all()
    assert creation.screenshot_url == "https://img.example.com/1.png"

    listed = client.get(f"/api/creations/{creation.id}/screenshots").get_json()
    assert [s["url"] for s in listed["screenshots"]] == [
        "https://img.example.com/1.png",
        "https://img.example.com/2.png",
    ]


def test_url_required(client, owner, creation):
    login(client, owner)
    resp = _add(client, creation, "")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "URL is required"


def test_non_string_url_rejected(client, owner, creation):
    login(client, owner)
    resp = client.post(f"/api/creations/{creation.id}/screenshots", json={"url": 7})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "URL is required"
    assert CreationScreenshot.query.filter_by(creation_id=creation.id).count() == 0


def test_set_main_keeps_single_main(app, client, owner, creation):
    login(client, owner)
    _add(client, creation, "https://img.example.com/1.png")
    second = _add(client, creation, "https://img.example.com/2.png").get_json()["screenshot"]
    resp = client.patch(
        f"/api/creations/{creation.id}/screenshots", json={"screenshotId": second["id"]}
    )
    assert resp.get_json() == {"success": True}
    mains = CreationScreenshot.query.filter_by(creation_id=creation.id, is_main=True).all()
    assert [m.id for m in mains] == [second["id"]]
    db.session.expire_all()
    assert creation.screenshot_url == "https://img.example.com/2.png"


def test_deleting_main_promotes_next(app, client, owner, creation):
    login(client, owner)
    first = _add(client, creation, "https://img.example.com/1.png").get_json()["screenshot"]
    second = _add(client, creation, "https://img.example.com/2.png").get_json()["screenshot"]
    resp = client.delete(
        f"/api/creations/{creation.id}/screenshots", json={"screenshotId": first["id"]}
    )
    assert resp.status_code == 200
    remaining = CreationScreenshot.query.filter_by(creation_id=creation.id).all()
    assert [(s.id, s.is_main) for s in remaining] == [(second["id"], True)]


def test_missing_screenshot_id(client, owner, creation):
    login(client, owner)
    resp = client.patch(f"/api/creations/{creation.id}/screenshots", json={})
    assert resp.status_code == 400
    resp = client.delete(f"/api/creations/{creation.id}/screenshots", json={"screenshotId": 999})
    assert resp.status_code == 404


def test_other_users_cannot_modify(client, creation, make_user):
    login(client, make_user())
    resp = _add(client, creation, "https://img.example.com/1.png")
    assert resp.status_code == 403


def test_admin_can_modify(client, creation, make_user):
    login(client, make_user(is_admin=True))
    assert _add(client, creation, "https://img.example.com/1.png").status_code == 200


def test_upload_requires_login(client):
    resp = client.post("/api/screenshots/upload", data={})
    assert resp.status_code == 401


def test_upload_stored_locally_without_imgbb_key(app, client, owner, tmp_path):
    login(client, owner)
    resp = client.post(
        "/api/screenshots/upload",
        data={"file": (io.BytesIO(png_bytes()), "shot.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["url"].startswith(f"/uploads/screenshots/{owner.id}/")
    assert body["url"].endswith("-shot.png")
    relative = body["url"][len("/uploads/"):]
    assert os.path.exists(os.path.join(tmp_path, "uploads", relative))

    served = client.get(body["url"])
    assert served.status_code == 200
    assert served.data == png_bytes()


def test_upload_rejects_non_images(client, owner):
    login(client, owner)
    resp = client.post(
        "/api/screenshots/upload",
        data={"file": (io.BytesIO(b"hello"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Only image files are allowed"

    resp = client.post(
        "/api/screenshots/upload",
        data={"file": (io.BytesIO(b"not really a png"), "fake.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400

    resp = client.post("/api/screenshots/upload", data={}, content_type="multipart/form-data")
    assert resp.get_json()["error"] == "No file provided"


class _FakeResponse:
    ok = True
    reason = "OK"

    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


def test_upload_goes_to_imgbb_when_configured(app, client, owner, monkeypatch):
    app.config["IMG_BB_API_KEY"] = "secret"
    seen = {}

    def fake_post(url, data=None, timeout=None):
        seen["url"] = url
        seen["key"] = data["key"]
        return _FakeResponse(
            {
                "success": True,
                "data": {
                    "url": "https://i.ibb.co/x/shot.png",
                    "display_url": "https://ibb.co/x",
                    "delete_url": "https://ibb.co/x/delete",
                },
            }
        )

    monkeypatch.setattr(requests, "post", fake_post)
    login(client, owner)
    resp = client.post(
        "/api/screenshots/upload",
        data={"file": (io.BytesIO(png_bytes()), "shot.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.get_json()["url"] == "https://i.ibb.co/x/shot.png"
    assert seen["key"] == "secret"
    assert "imgbb" in seen["url"]


def test_imgbb_failure_reported(app, client, owner, monkeypatch):
    app.config["IMG_BB_API_KEY"] = "secret"

    def fake_post(url, data=None, timeout=None):
        raise requests.Timeout("slow")

    monkeypatch.setattr(requests, "post", fake_post)
    login(client, owner)
    resp = client.post(
        "/api/screenshots/upload",
        data={"file": (io.BytesIO(png_bytes()), "shot.png", "image/png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 502
    assert "timed out" in resp.get_json()["error"]


def test_validate_upload_reports_dimensions():
    upload = FileStorage(io.BytesIO(png_bytes(size=(6, 2))), filename="wide.png", content_type="image/png")
    image = validate_upload(upload)
    assert (image.width, image.height) == (6, 2)
    assert image.filename == "wide.png"
