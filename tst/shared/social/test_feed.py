from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from src.shared.auth.database import engine
from src.shared.social import feed
from src.shared.social.database import Comment, Like, Post
from src.shared.social.identity import LookupStatus, UserLookup


def _ids(resp):
    return [p["id"] for p in resp.json()["posts"]]


def test_empty_feed(client):
    resp = client.get("/api/posts")
    assert resp.status_code == 200
    assert resp.json() == {"posts": [], "hasMore": False}


def test_pagination_newest_first(client, make_user, make_post):
    ada = make_user("Ada")
    oldest = make_post(ada, minutes=0)
    middle = make_post(ada, minutes=1)
    newest = make_post(ada, minutes=2)

    first = client.get("/api/posts", params={"page": 1, "limit": 2})
    assert _ids(first) == [newest.id, middle.id]
    assert first.json()["hasMore"] is True

    second = client.get("/api/posts", params={"page": 2, "limit": 2})
    assert _ids(second) == [oldest.id]
    assert second.json()["hasMore"] is False


def test_exact_page_boundary_has_no_more(client, make_user, make_post):
    ada = make_user("Ada")
    make_post(ada, minutes=0)
    make_post(ada, minutes=1)

    resp = client.get("/api/posts", params={"page": 1, "limit": 2})
    assert len(resp.json()["posts"]) == 2
    assert resp.json()["hasMore"] is False


def test_same_timestamp_pages_do_not_overlap(client, make_user, db):
    ada = make_user("Ada")
    stamp = datetime(2024, 3, 1)
    for _ in range(5):
        db.add(Post(user_id=ada.id, image_url="https://cdn.example.com/x.jpg", created_at=stamp, updated_at=stamp))
    db.commit()

    seen = []
    for page in (1, 2, 3):
        seen.extend(_ids(client.get("/api/posts", params={"page": page, "limit": 2})))
    assert len(seen) == 5
    assert len(set(seen)) == 5


def test_filter_by_owner_either_identifier(client, make_user, make_post):
    ada = make_user("Ada", external_auth_id="auth0|ada")
    bob = make_user("Bob", external_auth_id="auth0|bob")
    ada_post = make_post(ada, minutes=0)
    make_post(bob, minutes=1)

    by_external = client.get("/api/posts", params={"userId": "auth0|ada"})
    by_pk = client.get("/api/posts", params={"userId": ada.id})

    assert _ids(by_external) == [ada_post.id]
    assert _ids(by_pk) == [ada_post.id]
    assert by_external.json()["hasMore"] is False


def test_unknown_owner_gives_empty_page(client, make_user, make_post):
    make_post(make_user("Ada"))
    resp = client.get("/api/posts", params={"userId": "auth0|ghost"})
    assert resp.status_code == 200
    assert resp.json() == {"posts": [], "hasMore": False}


def test_feed_entry_shape(client, make_user, make_post, db):
    ada = make_user("Ada")
    bob = make_user("Bob")
    post = make_post(ada, caption="sunset")
    start = datetime(2024, 1, 2)
    for i in range(3):
        db.add(Comment(post_id=post.id, user_id=bob.id, content=f"c{i}", created_at=start + timedelta(minutes=i)))
    db.commit()

    entry = client.get("/api/posts").json()["posts"][0]

    assert entry["caption"] == "sunset"
    assert entry["user"]["display_name"] == "Ada"
    assert entry["comment_count"] == 3
    assert entry["like_count"] == 0
    assert entry["is_liked"] is False
    assert [c["content"] for c in entry["previewComments"]] == ["c2", "c1"]


def test_invalid_paging_params_rejected(client):
    assert client.get("/api/posts", params={"page": 0}).status_code == 400
    assert client.get("/api/posts", params={"limit": 51}).status_code == 400


def test_post_detail(client, make_user, make_post):
    post = make_post(make_user("Ada"), caption="hello")

    resp = client.get(f"/api/posts/{post.id}")
    assert resp.status_code == 200
    assert resp.json()["post"]["caption"] == "hello"

    missing = client.get("/api/posts/no-such-post")
    assert missing.status_code == 404
    assert missing.json()["error"] == "Post not found"


def test_feed_survives_missing_engagement_tables(client, make_user, make_post, auth_headers):
    post = make_post(make_user("Ada"), caption="still here")
    Like.__table__.drop(bind=engine)
    Comment.__table__.drop(bind=engine)

    resp = client.get("/api/posts", headers=auth_headers("auth0|bob"))

    assert resp.status_code == 200
    entry = resp.json()["posts"][0]
    assert entry["id"] == post.id
    assert entry["like_count"] == 0
    assert entry["comment_count"] == 0
    assert entry["is_liked"] is False
    assert entry["previewComments"] == []


def test_has_more_falls_back_to_full_page_when_count_fails(db, make_user, make_post, monkeypatch):
    ada = make_user("Ada")
    for minutes in range(3):
        make_post(ada, minutes=minutes)

    def broken_scalar(self):
        raise OperationalError("SELECT count(posts.id)", {}, Exception("statement timeout"))

    monkeypatch.setattr(Query, "scalar", broken_scalar)

    full_page = feed.list_posts(db, page=1, limit=2)
    assert len(full_page.posts) == 2
    assert full_page.has_more is True

    short_page = feed.list_posts(db, page=1, limit=5)
    assert len(short_page.posts) == 3
    assert short_page.has_more is False


def test_owner_lookup_error_gives_empty_page(client, make_user, make_post, monkeypatch):
    make_post(make_user("Ada", external_auth_id="auth0|ada"))
    monkeypatch.setattr(
        feed, "resolve_user",
        lambda db, identifier: UserLookup(LookupStatus.LOOKUP_ERROR, error="connection lost"),
    )

    resp = client.get("/api/posts", params={"userId": "auth0|ada"})

    assert resp.status_code == 200
    assert resp.json() == {"posts": [], "hasMore": False}
