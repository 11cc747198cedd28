import pytest

from boondit.app import db
from boondit.models import CreationReview, CreationView
from boondit.services import catalog
from conftest import login


@pytest.fixture
def listing(make_user, make_category, make_creation):
    owner = make_user(name="Ada")
    games = make_category("Games", "games")
    tools = make_category("Tools", "tools")
    a = make_creation(owner, title="Asteroid Miner", category_id=games.id, views=5, tags="space, arcade")
    b = make_creation(owner, title="Budget Planner", category_id=tools.id, views=20)
    c = make_creation(owner, title="Cave Crawler", category_id=games.id, views=1, is_featured=True)
    d = make_creation(owner, title="Draft Thing", status="draft")
    return owner, a, b, c, d


def test_only_published_listed(app, listing):
    titles = [c.title for c in catalog.list_published()]
    assert "Draft Thing" not in titles
    assert len(titles) == 3


def test_filter_by_category_id_or_slug(app, listing):
    titles = {c.title for c in catalog.list_published(category="games")}
    assert titles == {"Asteroid Miner", "Cave Crawler"}


def test_search_matches_title_tags_and_category(app, listing):
    assert [c.title for c in catalog.list_published(search="budget")] == ["Budget Planner"]
    assert [c.title for c in catalog.list_published(search="ARCADE")] == ["Asteroid Miner"]
    assert {c.title for c in catalog.list_published(search="tools")} == {"Budget Planner"}


def test_sorting(app, listing):
    assert [c.title for c in catalog.list_published(sort="az")][0] == "Asteroid Miner"
    assert [c.title for c in catalog.list_published(sort="za")][0] == "Cave Crawler"
    assert [c.title for c in catalog.list_published(sort="popular")][0] == "Budget Planner"
    assert [c.title for c in catalog.list_published(sort="bogus")][0] == "Cave Crawler"


def test_sort_by_rating(app, listing, make_user):
    owner, a, b, c, _ = listing
    reviewer = make_user()
    db.session.add(CreationReview(creation_id=c.id, user_id=reviewer.id, rating=5))
    db.session.add(CreationReview(creation_id=a.id, user_id=reviewer.id, rating=2))
    db.session.commit()
    titles = [x.title for x in catalog.list_published(sort="rating")]
    assert titles[:2] == ["Cave Crawler", "Asteroid Miner"]


def test_featured_and_grouping(app, listing):
    assert [c.title for c in catalog.featured_creations()] == ["Cave Crawler"]
    groups = dict((cat.slug, [c.title for c in items]) for cat, items in catalog.creations_by_category())
    assert set(groups) == {"games", "tools"}
    assert sorted(groups["games"]) == ["Asteroid Miner", "Cave Crawler"]


def test_parse_creation_path():
    assert catalog.parse_creation_path("12-my-app") == 12
    assert catalog.parse_creation_path("7") == 7
    assert catalog.parse_creation_path("my-app") is None


def test_views_counted_once_per_session(app, listing):
    _, a, *_ = listing
    assert catalog.increment_creation_views(a.id, "anon_1.2.3.4") is True
    assert catalog.increment_creation_views(a.id, "anon_1.2.3.4") is False
    assert catalog.increment_creation_views(a.id, "user_x") is True
    db.session.expire_all()
    assert a.views == 7
    assert CreationView.query.filter_by(creation_id=a.id).count() == 2


def test_index_page(client, listing):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Asteroid Miner" in resp.data
    assert b"Draft Thing" not in resp.data
    assert b"Featured" in resp.data


def test_index_invalid_link_notice(client, listing):
    resp = client.get("/?error=invalid-link")
    assert b"not valid" in resp.data


def test_detail_page_tracks_views(app, client, listing):
    _, a, *_ = listing
    resp = client.get(f"/{a.id}-asteroid-miner", headers={"X-Forwarded-For": "198.51.100.7"})
    assert resp.status_code == 200
    assert b"Asteroid Miner" in resp.data
    client.get(f"/{a.id}", headers={"X-Forwarded-For": "198.51.100.7"})
    db.session.expire_all()
    assert a.views == 6


def test_detail_renders_markdown_overview(app, client, make_user, make_creation):
    creation = make_creation(
        make_user(), title="Notes", overview="**bold** <script>alert(1)</script>"
    )
    resp = client.get(creation.path)
    assert b"<strong>bold</strong>" in resp.data
    assert b"<script>alert(1)</script>" not in resp.data


def test_draft_hidden_from_public_but_visible_to_owner(client, listing):
    owner, *_, draft = listing
    assert client.get(f"/{draft.id}").status_code == 404
    login(client, owner)
    assert client.get(f"/{draft.id}").status_code == 200


def test_profile_page_lists_published_only(client, listing):
    owner, *_ = listing
    resp = client.get(f"/u/{owner.id}")
    assert resp.status_code == 200
    assert b"Ada" in resp.data
    assert b"3 creations" in resp.data
    assert b"Draft Thing" not in resp.data
    assert client.get("/u/nobody").status_code == 404


def test_static_pages(client):
    assert client.get("/tos").status_code == 200
    assert client.get("/privacy").status_code == 200
    assert client.get("/health").data == b"OK"


def test_index_groups_listing_without_requery(client, listing, monkeypatch):
    calls = []
    original = catalog.list_published

    def counting(*args, **kwargs):
        calls.append(kwargs)
        return original(*args, **kwargs)

    monkeypatch.setattr(catalog, "list_published", counting)
    resp = client.get("/")
    assert resp.status_code == 200
    assert len(calls) == 1
    assert b"Budget Planner" in resp.data
