from src.shared.social.database import Follow


def _sign_in(client, auth_headers, sub):
    headers = auth_headers(sub)
    user = client.get("/api/users/me", headers=headers).json()["user"]
    return user, headers


def test_follow_by_external_id(client, auth_headers, db):
    ada, _ = _sign_in(client, auth_headers, "auth0|ada")
    bob, bob_headers = _sign_in(client, auth_headers, "auth0|bob")

    resp = client.post("/api/follows", json={"followingId": "auth0|ada"}, headers=bob_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["follow"]["follower_id"] == bob["id"]
    assert body["follow"]["following_id"] == ada["id"]
    assert db.query(Follow).count() == 1


def test_follow_twice_conflicts(client, auth_headers, db):
    ada, _ = _sign_in(client, auth_headers, "auth0|ada")
    _, bob_headers = _sign_in(client, auth_headers, "auth0|bob")

    client.post("/api/follows", json={"followingId": ada["id"]}, headers=bob_headers)
    resp = client.post("/api/follows", json={"followingId": "auth0|ada"}, headers=bob_headers)

    assert resp.status_code == 409
    assert resp.json()["error"] == "Already following this user"
    assert db.query(Follow).count() == 1


def test_cannot_follow_self(client, auth_headers, db):
    ada, ada_headers = _sign_in(client, auth_headers, "auth0|ada")

    resp = client.post("/api/follows", json={"followingId": ada["id"]}, headers=ada_headers)

    assert resp.status_code == 400
    assert resp.json()["error"] == "You cannot follow yourself"
    assert db.query(Follow).count() == 0


def test_follow_unknown_user(client, auth_headers):
    _, bob_headers = _sign_in(client, auth_headers, "auth0|bob")

    resp = client.post("/api/follows", json={"followingId": "auth0|ghost"}, headers=bob_headers)

    assert resp.status_code == 404
    assert resp.json()["error"] == "User to follow not found"


def test_follow_requires_auth(client):
    resp = client.post("/api/follows", json={"followingId": "auth0|ada"})
    assert resp.status_code == 401


def test_follow_missing_field_is_400(client, auth_headers):
    _, bob_headers = _sign_in(client, auth_headers, "auth0|bob")
    resp = client.post("/api/follows", json={}, headers=bob_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_unfollow(client, auth_headers, db):
    ada, _ = _sign_in(client, auth_headers, "auth0|ada")
    _, bob_headers = _sign_in(client, auth_headers, "auth0|bob")
    client.post("/api/follows", json={"followingId": ada["id"]}, headers=bob_headers)

    resp = client.delete("/api/follows/auth0|ada", headers=bob_headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert db.query(Follow).count() == 0

    again = client.delete(f"/api/follows/{ada['id']}", headers=bob_headers)
    assert again.status_code == 404
    assert again.json()["error"] == "Follow relationship not found"


def test_profile_reflects_follow(client, auth_headers):
    ada, _ = _sign_in(client, auth_headers, "auth0|ada")
    _, bob_headers = _sign_in(client, auth_headers, "auth0|bob")
    client.post("/api/follows", json={"followingId": ada["id"]}, headers=bob_headers)

    as_bob = client.get(f"/api/users/{ada['id']}", headers=bob_headers).json()
    assert as_bob["isFollowing"] is True
    assert as_bob["stats"] == {"posts": 0, "followers": 1, "following": 0}

    anonymous = client.get("/api/users/auth0|ada").json()
    assert anonymous["isFollowing"] is False
