import pytest

from boondit.models import CreationReview
from boondit.services import catalog
from conftest import login


@pytest.fixture
def creation(make_user, make_creation):
    return make_creation(make_user(name="Owner"))


def test_post_requires_login(client, creation):
    resp = client.post(f"/api/creations/{creation.id}/reviews", json={"rating": 5})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Unauthorized"}


@pytest.mark.parametrize("rating", [0, 6, 4.5, "5", True, None])
def test_invalid_ratings_rejected(client, creation, make_user, rating):
    login(client, make_user())
    resp = client.post(f"/api/creations/{creation.id}/reviews", json={"rating": rating})
    assert resp.status_code == 400
    assert "between 1 and 5" in resp.get_json()["error"]


def test_post_creates_then_updates_review(app, client, creation, make_user):
    reviewer = make_user(name="Rita")
    login(client, reviewer)
    url = f"/api/creations/{creation.id}/reviews"

    resp = client.post(url, json={"rating": 4, "comment": "Nice"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["rating"] == 4
    assert body["comment"] == "Nice"
    assert body["user"]["name"] == "Rita"

    resp = client.post(url, json={"rating": 2, "comment": "  "})
    assert resp.status_code == 201
    assert resp.get_json()["id"] == body["id"]
    assert CreationReview.query.filter_by(creation_id=creation.id).count() == 1
    review = CreationReview.query.filter_by(creation_id=creation.id).one()
    assert review.rating == 2
    assert review.comment is None


def test_list_reviews_and_average(app, client, creation, make_user):
    for rating in (5, 4, 4):
        login(client, make_user())
        client.post(f"/api/creations/{creation.id}/reviews", json={"rating": rating})
    resp = client.get(f"/api/creations/{creation.id}/reviews")
    assert resp.status_code == 200
    assert len(resp.get_json()) == 3
    assert catalog.average_rating(creation.id) == {"average": 4.3, "count": 3}


def test_average_rating_none_without_reviews(app, creation):
    assert catalog.average_rating(creation.id) is None


def test_delete_own_review(app, client, creation, make_user):
    login(client, make_user())
    url = f"/api/creations/{creation.id}/reviews"
    assert client.delete(url).status_code == 404
    client.post(url, json={"rating": 3})
    resp = client.delete(url)
    assert resp.get_json() == {"success": True}
    assert CreationReview.query.count() == 0


def test_unknown_creation(client, make_user):
    assert client.get("/api/creations/999/reviews").status_code == 404
    login(client, make_user())
    assert client.post("/api/creations/999/reviews", json={"rating": 3}).status_code == 404


def test_whole_float_rating_accepted(app, client, creation, make_user):
    login(client, make_user())
    resp = client.post(f"/api/creations/{creation.id}/reviews", json={"rating": 4.0})
    assert resp.status_code == 201
    assert resp.get_json()["rating"] == 4
    assert catalog.validate_rating(5.0) == 5


def test_non_string_comment_rejected(client, creation, make_user):
    login(client, make_user())
    resp = client.post(
        f"/api/creations/{creation.id}/reviews", json={"rating": 5, "comment": 42}
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Comment must be a string"}
    assert CreationReview.query.filter_by(creation_id=creation.id).count() == 0
