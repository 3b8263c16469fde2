from datetime import datetime
from urllib.parse import quote


PLACE_ID = "스타벅스 광화문점-1269780000-375660000"
PLACE_PATH = f"/places/{quote(PLACE_ID)}/reviews"


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def _token(client, email, nickname):
    r = client.post("/auth/register", json={"email": email, "password": "password123", "nickname": nickname})
    assert r.status_code == 201, r.text
    return r.json()["access_token"]


def _create(client, token, rating=4, content="맛있어요"):
    return client.post(
        PLACE_PATH,
        json={"place_name": "스타벅스 광화문점", "rating": rating, "content": content},
        headers=auth_header(token),
    )


def test_create_and_list(client):
    token = _token(client, "a@example.com", "Alice")

    r = _create(client, token)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["place_id"] == PLACE_ID
    assert body["user_nickname"] == "Alice"
    assert body["created_at"] == body["updated_at"]

    _create(client, token, rating=5, content="또 왔어요")

    r = client.get(PLACE_PATH)
    assert r.status_code == 200
    listing = r.json()
    assert listing["total"] == 2
    assert listing["avg_rating"] == 4.5
    assert [i["rating"] for i in listing["items"]] == [5, 4]


def test_list_of_unknown_place_is_empty(client):
    r = client.get("/places/nowhere/reviews")
    assert r.status_code == 200
    assert r.json() == {"items": [], "total": 0, "avg_rating": 0.0}


def test_create_requires_login(client):
    r = client.post(PLACE_PATH, json={"place_name": "x", "rating": 3, "content": "ok"})
    assert r.status_code == 401


def test_create_validates_fields(client):
    token = _token(client, "a@example.com", "Alice")

    assert _create(client, token, rating=0).status_code == 422
    assert _create(client, token, rating=6).status_code == 422
    assert _create(client, token, content="").status_code == 422
    assert _create(client, token, content="x" * 501).status_code == 422
    assert _create(client, token, content="x" * 500).status_code == 201


def test_update_by_author(client):
    token = _token(client, "a@example.com", "Alice")
    review = _create(client, token, rating=3).json()

    r = client.patch(f"/reviews/{review['id']}", json={"rating": 5, "content": "최고"}, headers=auth_header(token))

    assert r.status_code == 200, r.text
    updated = r.json()
    assert (updated["rating"], updated["content"]) == (5, "최고")
    assert datetime.fromisoformat(updated["updated_at"]) > datetime.fromisoformat(updated["created_at"])
    assert client.get(PLACE_PATH).json()["avg_rating"] == 5.0


def test_other_user_cannot_change_review(client):
    alice = _token(client, "a@example.com", "Alice")
    bob = _token(client, "b@example.com", "Bob")
    review = _create(client, alice).json()

    r = client.patch(f"/reviews/{review['id']}", json={"rating": 1, "content": "별로"}, headers=auth_header(bob))
    assert r.status_code == 403

    r = client.delete(f"/reviews/{review['id']}", headers=auth_header(bob))
    assert r.status_code == 403

    assert client.get(PLACE_PATH).json()["total"] == 1


def test_missing_review_404(client):
    token = _token(client, "a@example.com", "Alice")

    r = client.patch("/reviews/missing", json={"rating": 3, "content": "ok"}, headers=auth_header(token))
    assert r.status_code == 404

    r = client.delete("/reviews/missing", headers=auth_header(token))
    assert r.status_code == 404


def test_delete_by_author(client):
    token = _token(client, "a@example.com", "Alice")
    review = _create(client, token).json()

    r = client.delete(f"/reviews/{review['id']}", headers=auth_header(token))
    assert r.status_code == 204

    listing = client.get(PLACE_PATH).json()
    assert (listing["total"], listing["avg_rating"]) == (0, 0.0)
