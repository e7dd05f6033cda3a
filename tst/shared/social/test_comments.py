from datetime import datetime, timedelta

from src.shared.social.database import Comment


def test_create_comment_trims_content(client, auth_headers, make_user, make_post):
    post = make_post(make_user("Ada"))

    resp = client.post(
        "/api/comments",
        json={"postId": post.id, "content": "  nice shot  "},
        headers=auth_headers("auth0|bob", name="Bob"),
    )

    assert resp.status_code == 201
    comment = resp.json()["comment"]
    assert comment["content"] == "nice shot"
    assert comment["post_id"] == post.id
    assert comment["user"]["display_name"] == "Bob"


def test_blank_comment_rejected(client, auth_headers, make_user, make_post, db):
    post = make_post(make_user("Ada"))

    resp = client.post(
        "/api/comments",
        json={"postId": post.id, "content": "   "},
        headers=auth_headers("auth0|bob"),
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Comment content is required"
    assert db.query(Comment).count() == 0


def test_overlong_comment_rejected(client, auth_headers, make_user, make_post):
    post = make_post(make_user("Ada"))
    resp = client.post(
        "/api/comments",
        json={"postId": post.id, "content": "x" * 1001},
        headers=auth_headers("auth0|bob"),
    )
    assert resp.status_code == 400


def test_comment_missing_post_id_is_400(client, auth_headers):
    resp = client.post("/api/comments", json={"content": "hi"}, headers=auth_headers("auth0|bob"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_comment_on_missing_post(client, auth_headers):
    resp = client.post(
        "/api/comments",
        json={"postId": "no-such-post", "content": "hi"},
        headers=auth_headers("auth0|bob"),
    )
    assert resp.status_code == 404


def test_list_comments_newest_first(client, make_user, make_post, db):
    ada = make_user("Ada")
    post = make_post(ada)
    start = datetime(2024, 1, 2)
    for i in range(3):
        db.add(Comment(post_id=post.id, user_id=ada.id, content=f"c{i}", created_at=start + timedelta(minutes=i)))
    db.commit()

    resp = client.get("/api/comments", params={"postId": post.id})
    assert resp.status_code == 200
    assert [c["content"] for c in resp.json()["comments"]] == ["c2", "c1", "c0"]

    limited = client.get("/api/comments", params={"postId": post.id, "limit": 1})
    assert [c["content"] for c in limited.json()["comments"]] == ["c2"]


def test_list_comments_requires_post_id(client):
    resp = client.get("/api/comments")
    assert resp.status_code == 400


def test_delete_comment_owner_only(client, auth_headers, make_user, make_post, db):
    post = make_post(make_user("Ada"))
    bob_headers = auth_headers("auth0|bob")
    created = client.post(
        "/api/comments", json={"postId": post.id, "content": "mine"}, headers=bob_headers
    ).json()["comment"]

    forbidden = client.delete(f"/api/comments/{created['id']}", headers=auth_headers("auth0|eve"))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "You can only delete your own comments"
    listed = client.get("/api/comments", params={"postId": post.id}).json()["comments"]
    assert [c["id"] for c in listed] == [created["id"]]

    resp = client.delete(f"/api/comments/{created['id']}", headers=bob_headers)
    assert resp.status_code == 200
    assert db.query(Comment).count() == 0

    missing = client.delete(f"/api/comments/{created['id']}", headers=bob_headers)
    assert missing.status_code == 404
