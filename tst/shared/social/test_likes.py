from src.shared.social.database import Like


def test_like_and_unlike(client, auth_headers, make_user, make_post, db):
    post = make_post(make_user("Ada"))
    headers = auth_headers("auth0|bob")

    resp = client.post("/api/likes", json={"postId": post.id}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["like"]["post_id"] == post.id
    assert body["like_count"] == 1

    resp = client.delete(f"/api/likes/{post.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "like_count": 0}
    assert db.query(Like).count() == 0


def test_like_twice_conflicts(client, auth_headers, make_user, make_post, db):
    post = make_post(make_user("Ada"))
    headers = auth_headers("auth0|bob")

    client.post("/api/likes", json={"postId": post.id}, headers=headers)
    resp = client.post("/api/likes", json={"postId": post.id}, headers=headers)

    assert resp.status_code == 409
    assert resp.json()["error"] == "Already liked"
    assert db.query(Like).count() == 1


def test_unlike_without_like_succeeds(client, auth_headers, make_user, make_post):
    post = make_post(make_user("Ada"))
    resp = client.delete(f"/api/likes/{post.id}", headers=auth_headers("auth0|bob"))
    assert resp.status_code == 200
    assert resp.json()["like_count"] == 0


def test_like_missing_post(client, auth_headers):
    resp = client.post("/api/likes", json={"postId": "no-such-post"}, headers=auth_headers("auth0|bob"))
    assert resp.status_code == 404
    assert resp.json()["error"] == "Post not found"


def test_like_requires_auth(client, make_user, make_post):
    post = make_post(make_user("Ada"))
    resp = client.post("/api/likes", json={"postId": post.id})
    assert resp.status_code == 401


def test_like_shows_up_in_feed_for_liker_only(client, auth_headers, make_user, make_post):
    post = make_post(make_user("Ada"))
    headers = auth_headers("auth0|bob")
    client.post("/api/likes", json={"postId": post.id}, headers=headers)

    as_bob = client.get("/api/posts", headers=headers).json()["posts"][0]
    assert as_bob["like_count"] == 1
    assert as_bob["is_liked"] is True

    anonymous = client.get("/api/posts").json()["posts"][0]
    assert anonymous["like_count"] == 1
    assert anonymous["is_liked"] is False
